from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn import Server, Config

from config import API_PREFIX, CORS_ORIGINS
from src.webapp.errors import register_exception_handlers
from src.webapp.routes import *

app = FastAPI(title="Giveaways")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
register_exception_handlers(app)

app.include_router(giveaways_router, prefix=API_PREFIX)
app.include_router(draw_router, prefix=API_PREFIX)


@app.get("/health")
async def health():
    return {"ok": True}


async def run_app(host: str = "0.0.0.0", port: int = 8000):
    server = Server(Config(app, host=host, port=port, log_config=None))
    await server.serve()
