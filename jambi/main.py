import asyncio
import logging
from contextlib import asynccontextmanager, suppress
import traceback
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from jambi.core.config import settings
from jambi.core.exceptions import ApiError
from jambi.core.startup import ensure_admin_exists
from jambi.db.session import create_db_and_tables
from jambi.external_services.webhook_service import webhook_dispatcher
from jambi.tasks.payment_expiry_loop import payment_expiry_loop

from jambi.routers.admin_router import router as admin_router
from jambi.routers.form_router import router as form_router
from jambi.routers.payment_router import router as payment_router

logging.basicConfig(
    filename=settings.LOG_FILE or None,
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        logger.info("Creating database and tables...")
        create_db_and_tables()

        logger.info("Checking for admin user...")
        await ensure_admin_exists()
        logger.info("Admin user check completed")
    except Exception as e:
        logger.error(f"Error during application startup: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        raise

    expiry_task = None
    if settings.PAYMENT_EXPIRY_SWEEP_SECONDS > 0:
        expiry_task = asyncio.create_task(payment_expiry_loop(settings.PAYMENT_EXPIRY_SWEEP_SECONDS))

    yield

    if expiry_task:
        expiry_task.cancel()
        with suppress(asyncio.CancelledError):
            await expiry_task
    webhook_dispatcher.shutdown(wait=False)
    logger.info("Application shut down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return error_response(exc.status_code, exc.message, exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    if not errors:
        return error_response(400, "Invalid request body")

    first = errors[0]
    message = first.get("msg", "Invalid request body")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    elif first.get("type") == "missing":
        message = f"{first['loc'][-1]} is required"
    elif first.get("type") == "json_invalid":
        message = "Invalid JSON body"
    return error_response(400, message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error: {str(exc)}")
    logger.error(f"Traceback: {traceback.format_exc()}")
    return error_response(500, "Internal Server Error")


app.include_router(payment_router)
app.include_router(form_router)
app.include_router(admin_router)


@app.get("/", include_in_schema=False)
@app.head("/", include_in_schema=False)
def root():
    return {"message": "Service is up"}
