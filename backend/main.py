# =====================================
# backend/main.py - Entry Point
# =====================================
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import os
from dotenv import load_dotenv

from api.auth import router as auth_router
from api.bets import router as bets_router, votes_router
from database.supabase_client import check_connection
from services.exceptions import BetError
from utils.logging_utils import RequestLoggingMiddleware, setup_logging

load_dotenv()
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup - verificar conexão com Supabase
    if os.getenv("BET_STORE_BACKEND", "supabase").lower() == "supabase":
        if not check_connection():
            raise RuntimeError("Supabase connection failed")
        logger.info("Supabase connection successful")
    else:
        logger.info("Running with in-memory bet store")

    yield

    # Shutdown
    logger.info("Shutting down ApostaFacil API")

app = FastAPI(
    title="ApostaFacil API",
    description="Apostas informais em grupo: criação, votos e divisão do prêmio",
    version="1.0.0",
    lifespan=lifespan
)

# CORS para o frontend Flask
app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("FRONTEND_ORIGIN", "http://localhost:5000")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Campos ausentes/inválidos respondem 400, como o restante das regras
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": errors})


@app.exception_handler(BetError)
async def bet_exception_handler(request: Request, exc: BetError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

# Routers
app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(bets_router, prefix="/api/bets", tags=["Bets"])
app.include_router(votes_router, prefix="/api/votes", tags=["Votes"])


@app.get("/")
def root():
    return {
        "message": "ApostaFacil API is running!",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "ApostaFacil"}
