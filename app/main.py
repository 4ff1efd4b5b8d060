import logging

from fastapi import FastAPI
from dotenv import load_dotenv
from app.core.config import settings
from app.core.database import Base, engine
from app.scheduler import start_scheduler, stop_scheduler
from app.api import automations
from fastapi.middleware.cors import CORSMiddleware

from app.models import *

load_dotenv()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


app = FastAPI(title="Freelance CRM Automations")

# -------------------------
# CORS (Allow Frontend Cookies)
# -------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------
# Include Routers
# -------------------------
app.include_router(automations.router)


# -------------------------
# DB INIT
# -------------------------
Base.metadata.create_all(bind=engine)

# -------------------------
# FastAPI lifecycle
# -------------------------

@app.on_event("startup")
def startup():
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    else:
        logger.info("In-process scheduler disabled, waiting for external ticks")

@app.on_event("shutdown")
def shutdown():
    stop_scheduler()

# -------------------------
# Routes
# -------------------------

@app.get("/")
def root():
    return {"status": "running"}
