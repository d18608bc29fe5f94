# --- agent_assist/main.py ---------------------------------------------------
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .settings import settings
from .log import setup_logging

setup_logging()

app = FastAPI(title="Agent Assist Runner Requests")

# CORS so the booking front end (http://localhost:5173) can call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.AA_FRONTEND_ORIGIN, "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health():
    return {"ok": True, "env": settings.APP_ENV}

# Routers
from .quotes import router as quotes_router
from .sessions import router as sessions_router

app.include_router(quotes_router)
app.include_router(sessions_router)
# ---------------------------------------------------------------------------
