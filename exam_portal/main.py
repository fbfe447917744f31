"""
Exam Portal API - Main Application
Test assembly, attempts and scoring
FILE: main.py
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import time

from exam_portal import __version__
from exam_portal.core.config import settings
from exam_portal.db.mongodb import connect_to_mongo, close_mongo_connection, ping_database
from exam_portal.api.pools import router as pools_router
from exam_portal.api.questions import router as questions_router
from exam_portal.api.exams import router as exams_router
from exam_portal.api.analytics import router as analytics_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("🚀 Starting Exam Portal API...")

    try:
        await connect_to_mongo()
        logger.info("✓ MongoDB connected, indexes ready")
    except Exception as e:
        logger.error(f"❌ Startup error: {e}")
        raise

    yield

    logger.info("🛑 Shutting down Exam Portal API...")

    try:
        await close_mongo_connection()
        logger.info("✓ Cleanup complete")
    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")


app = FastAPI(
    title="Exam Portal API",
    description="""
    Online exam administration: question pools, test release, attempts and scoring.

    ## Features
    - **Question Pools**: Per-course pools of single-choice questions
    - **Test Release**: Difficulty-percentage or per-pool custom sampling, or whole pools
    - **Attempts**: One attempt per student per test, with a private question snapshot
    - **Scoring**: Percentage score with per-topic breakdown
    - **Analytics**: Course, test and student level reports

    ## Endpoints
    - **Pools**: `/api/pools/*`
    - **Questions**: `/api/questions/*`
    - **Tests**: `/api/tests/*` and `/api/results/{attemptId}`
    - **Faculty**: `/api/faculty/*`
    - **Health**: `/health`
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers"""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000  # ms
    response.headers["X-Process-Time-Ms"] = str(round(process_time, 2))
    return response


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    logger.info(f"📨 {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(
        f"📤 {request.method} {request.url.path} - "
        f"Status: {response.status_code}"
    )
    return response


# ==================== INCLUDE ROUTERS ====================

app.include_router(pools_router, prefix="/api", tags=["Pools"])
app.include_router(questions_router, prefix="/api", tags=["Questions"])
app.include_router(exams_router, prefix="/api", tags=["Tests"])
app.include_router(analytics_router, prefix="/api", tags=["Faculty"])


# ==================== ROOT ENDPOINTS ====================

@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Exam Portal API",
        "version": __version__,
        "status": "operational",
        "endpoints": {
            "docs": "/docs",
            "redoc": "/redoc",
            "pools": "/api/pools",
            "questions": "/api/questions",
            "tests": "/api/tests",
            "faculty": "/api/faculty",
            "health": "/health"
        }
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check for the API and its MongoDB connection

    Returns:
        200 when MongoDB answers, 503 otherwise
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "components": {}
    }

    if await ping_database():
        health_status["components"]["mongodb"] = {
            "status": "healthy",
            "message": "Connected and responsive"
        }
        logger.debug("✓ MongoDB health check passed")
    else:
        health_status["status"] = "degraded"
        health_status["components"]["mongodb"] = {
            "status": "unhealthy",
            "message": "Connection failed"
        }
        logger.error("❌ MongoDB health check failed")

    health_status["api"] = {
        "title": app.title,
        "version": app.version,
        "status": "operational"
    }

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health_status)


# ==================== RUN APPLICATION ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "exam_portal.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level=settings.log_level.lower()
    )
