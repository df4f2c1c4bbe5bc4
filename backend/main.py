import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from api.habits import router as habits_router

logger = logging.getLogger(__name__)

settings.validate_configuration()

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(habits_router, prefix="/api")

if settings.RATIONALE_AI_ENABLED:
    logger.info("Rationale enrichment enabled via %s", settings.RATIONALE_AI_PROVIDER)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
