from fastapi import FastAPI, APIRouter, Request
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

from database import engine, Base
from routers.voting import router as voting_router
from routers.jury import router as jury_router
from routers.admin_results import router as admin_results_router
from utils import voting_error_response
from voting_errors import VotingError

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(title="Ideathon Voting API", version="1.0.0")
api_router = APIRouter(prefix="/api")


@app.exception_handler(VotingError)
async def handle_voting_error(request: Request, exc: VotingError):
    return voting_error_response(exc)


# ==================== STARTUP ====================
@app.on_event("startup")
async def startup_event():
    if os.environ.get("AUTO_CREATE_TABLES", "true").lower() == "true":
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")


# ==================== PUBLIC ROUTES ====================
@api_router.get("/")
async def root():
    return {"message": "Ideathon Voting API is running"}


@api_router.get("/health")
async def health_check():
    return {"status": "healthy"}


api_router.include_router(voting_router)
api_router.include_router(jury_router)
api_router.include_router(admin_results_router)

# Include router and add middleware
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)
