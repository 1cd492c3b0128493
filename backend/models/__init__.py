# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.profile import Profile
from models.budget import Budget
from models.account import Account
from models.category_group import CategoryGroup
from models.category import Category
from models.payee import Payee
from models.transaction import Transaction
from models.monthly_budget import MonthlyBudget
from models.tag import Tag
from models.transaction_tag import TransactionTag
from models.payee_category_rule import PayeeCategoryRule

# table name -> model, used by the SQL record store
MODELS_BY_TABLE = {
    model.__tablename__: model
    for model in (Profile, Budget, Account, CategoryGroup, Category, Payee, Transaction,
                  MonthlyBudget, Tag, TransactionTag, PayeeCategoryRule)
}

__all__ = [
    "Profile",
    "Budget",
    "Account",
    "CategoryGroup",
    "Category",
    "Payee",
    "Transaction",
    "MonthlyBudget",
    "Tag",
    "TransactionTag",
    "PayeeCategoryRule",
    "MODELS_BY_TABLE",
]
