import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from study_material.auth.admin_router import router as admin_router
from study_material.auth.router import router as auth_router
from study_material.compiler.router import router as compiler_router
from study_material.config import ENVIRONMENT, CLIENT_BUILD_DIR, MONGODB_URI, PORT
from study_material.content.router import router as content_router
from study_material.database import get_db_instance, create_indexes, close_client
from study_material.exception_handlers import setup_exception_handlers
from study_material.logging_config import setup_logging
from study_material.progress.router import router as progress_router
from study_material.users.router import router as users_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Study Material API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

setup_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    logger.info("Connecting to %s", "MongoDB Atlas" if "mongodb+srv" in MONGODB_URI else "MongoDB")
    try:
        await create_indexes(get_db_instance())
    except Exception as e:
        # The API still starts; requests will surface connection errors
        logger.error("MongoDB connection error: %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    close_client()


# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router, prefix="/api/auth")
app.include_router(content_router, prefix="/api/content")
app.include_router(admin_router, prefix="/api/admin")
app.include_router(users_router, prefix="/api/users")
app.include_router(progress_router, prefix="/api/progress")
app.include_router(compiler_router, prefix="/api/compiler")
# ============================================================


@app.get("/api/health")
def health():
    return {"status": "ok"}


def setup_client_routes(app: FastAPI, build_dir: str) -> None:
    """Serve the built single-page client, falling back to index.html"""
    index_file = os.path.join(build_dir, "index.html")
    root = os.path.realpath(build_dir)

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_client(full_path: str):
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not found")
        candidate = os.path.realpath(os.path.join(build_dir, full_path))
        if full_path and candidate.startswith(root + os.sep) and os.path.isfile(candidate):
            return FileResponse(candidate)
        return FileResponse(index_file)

    logger.info("Serving client build from %s", build_dir)


if ENVIRONMENT == "production" and os.path.isdir(CLIENT_BUILD_DIR):
    setup_client_routes(app, CLIENT_BUILD_DIR)


def run():
    import uvicorn
    uvicorn.run("study_material.main:app", host="0.0.0.0", port=PORT)
