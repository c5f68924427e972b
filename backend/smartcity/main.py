# backend/smartcity/main.py

import logging
from typing import Dict, Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# --- Import application modules ---
from smartcity.routers import traffic
from .config import initialize_config, default_config_path
from .services import initialize_services, shutdown_services
from .services.services import health_check as services_health_check
from .utils.config import load_config

# Logging will be reconfigured by initialize_config
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# --- FastAPI App Instance ---
app = FastAPI(
    title="Smart City - Traffic API",
    version="1.0.0",
    description="Live traffic congestion aggregation for the city dashboard.",
)

# --- Exception Handlers ---
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Ensure all unhandled exceptions return JSON rather than HTML"""
    logger.exception("Unhandled exception occurred:")
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Internal Server Error"}
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Convert HTTPExceptions to JSON format"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail}
    )

# --- Event Handlers ---
@app.on_event("startup")
async def startup_event():
    logger.info("--- Starting Smart City Traffic Backend ---")

    # 1. Initialize Configuration
    try:
        loaded_config = initialize_config()
    except Exception as e:
        logger.critical(f"CRITICAL FAILURE during config initialization: {e}", exc_info=True)
        raise RuntimeError(f"Configuration Initialization Failed: {e}") from e

    # 2. Initialize Services
    try:
        initialize_services(loaded_config)
    except Exception as e:
        logger.critical(f"Service Initialization Failed during startup: {e}", exc_info=True)
        raise RuntimeError(f"Service Initialization Failed: {e}") from e

    logger.info("Application startup complete.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("--- Shutting down Smart City Traffic Backend ---")
    await shutdown_services()
    logger.info("--- Backend shutdown complete ---")

# --- CORS Middleware ---
# Middleware must be registered at import time, before the startup event runs
origins = load_config(default_config_path()).get("server", {}).get("cors_origins", [])
app.add_middleware(CORSMiddleware, allow_origins=origins, allow_credentials=True, allow_methods=["GET"], allow_headers=["*"])


# --- Include API Routers ---
app.include_router(traffic.router, prefix="/api/traffic", tags=["Traffic"])
logger.info("API routers included successfully.")


@app.get("/api/health", response_model=Dict[str, Any], tags=["Health"])
async def health() -> Dict[str, Any]:
    return await services_health_check()


if __name__ == "__main__":
    import uvicorn
    server_config = initialize_config().get("server", {})
    uvicorn.run("smartcity.main:app", host=server_config.get("host", "0.0.0.0"), port=int(server_config.get("port", 9002)))
