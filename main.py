import uvicorn
from fastapi import FastAPI
from starlette.responses import RedirectResponse

from ncm_search.config import settings
from ncm_search.core.dependencies.search import get_vectorizer
from ncm_search.core.migrations import run_migrations_async
from ncm_search.routes.classification import router as classification_router
from ncm_search.routes.embeddings import router as embeddings_router
from ncm_search.routes.nomenclature import router as nomenclature_router
from ncm_search.routes.search import router as search_router
from ncm_search.utils.logger.logger import logger

app = FastAPI(title="NCM Search Service", swagger_ui_parameters={"operationsSorter": "method"})
app.include_router(router=search_router)
app.include_router(router=classification_router)
app.include_router(router=embeddings_router)
app.include_router(router=nomenclature_router)


@app.on_event("startup")
async def apply_migrations() -> None:
    """
    Bring the schema up to date before serving traffic.
    """

    if not settings.database.run_migrations:
        logger.info("Skipping database migrations (DB_RUN_MIGRATIONS is off)")
        return
    await run_migrations_async()


@app.on_event("startup")
async def preload_vectorizer() -> None:
    """
    Ensure the embedding backend is ready before serving traffic.
    """

    vectorizer = get_vectorizer()
    logger.info(
        f"Preparing embedding model '{vectorizer.model_name}' during startup"
    )
    await vectorizer.warm_up()


@app.get("/health", operation_id="healthcheck")
async def healthcheck() -> dict[str, str]:
    """
    Health endpoint for monitoring integrations.
    """

    return {"status": "ok"}


@app.head("/health", include_in_schema=False)
async def healthcheck_head() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/")
async def redirect_to_docs() -> RedirectResponse:
    """
    Redirect user to docs.
    """
    return RedirectResponse("/docs")


if __name__ == "__main__":
    uvicorn.run(app="main:app", host="0.0.0.0", port=8000)
