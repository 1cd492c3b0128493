import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS, STORAGE_BACKEND
from database import init_db
from errors import BudgetError, PartialFailureError
from log_config import setup_logging
from routes.account_routes import router as account_router
from routes.budget_routes import router as budget_router
from routes.category_routes import router as category_router
from routes.monthly_budget_routes import router as monthly_budget_router
from routes.report_routes import router as report_router
from routes.tag_routes import router as tag_router
from routes.transaction_routes import router as transaction_router
from routes.transfer_routes import router as transfer_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if STORAGE_BACKEND == "sql":
        try:
            init_db()
        except Exception as e:
            logger.error(f"Database init failed: {e}")
            raise
    logger.info(f"Budget backend started (storage: {STORAGE_BACKEND})")
    yield


app = FastAPI(title="Envelope Budget API", lifespan=lifespan)


@app.exception_handler(BudgetError)
async def budget_error_handler(request: Request, exc: BudgetError):
    if isinstance(exc, PartialFailureError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!", "storage": STORAGE_BACKEND}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(budget_router)
app.include_router(account_router)
app.include_router(category_router)
app.include_router(transaction_router)
app.include_router(transfer_router)
app.include_router(monthly_budget_router)
app.include_router(tag_router)
app.include_router(report_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
