import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aiact_compliance import __version__
from aiact_compliance.core.config import api_settings, app_settings
from aiact_compliance.core.logging_config import setup_logging
from aiact_compliance.routers import analysis as analysis_router
from aiact_compliance.routers import knowledge as knowledge_router
from aiact_compliance.routers import sessions as sessions_router

# Configure logging early so import-time messages are formatted too
setup_logging(app_settings.log_level, app_settings.log_json)
logger = logging.getLogger(__name__)

app = FastAPI(title="EU AI Act Compliance Analysis API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---
app.include_router(sessions_router.router)
app.include_router(analysis_router.router)
app.include_router(knowledge_router.router)


@app.get("/health", tags=["Health Check"])
async def health_check():
    """Liveness only; the remote analysis service is not contacted."""
    return {
        "status": "ok",
        "version": __version__,
        "analysis_api": api_settings.base_url,
    }


logger.info(f"Compliance API ready (remote analysis service: {api_settings.base_url})")


if __name__ == "__main__":
    import uvicorn
    # Prefer `uvicorn main:app --reload` from the project root
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
