from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from archsearch.core.exceptions import DataStoreError, InvalidFilterError
from archsearch.core.logger import configure_logging
from archsearch.routers.search import router as search_router

configure_logging()

app = FastAPI(title="Architecture Search API")

# Mount routers
app.include_router(search_router, prefix="/api/v1")

@app.exception_handler(DataStoreError)
async def data_store_error_handler(request: Request, exc: DataStoreError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": exc.message})

@app.exception_handler(InvalidFilterError)
async def invalid_filter_handler(request: Request, exc: InvalidFilterError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.message, **exc.details})

# Simple health for E2E bring-up
@app.get("/healthz")
def healthz():
    return {"status": "ok"}
