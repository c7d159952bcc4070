import logging

from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.config import settings
from db.database import create_db_and_tables, engine
from db.migrations import migrate_legacy_storage_columns
from routers.harvest import router as harvest_router
from routers.inventory import router as inventory_router
from routers.storage import router as storage_router
from core.auth import fastapi_users, auth_backend
from schemas.users import UserRead, UserCreate, UserUpdate

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    await migrate_legacy_storage_columns(engine)
    yield


app = FastAPI(
    title="Farm Storage API",
    description="Inventory, harvest logging and cold/dry storage accounting for farms",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Inventory + storage accounting routes
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(storage_router, prefix="/inventory", tags=["storage"])

# Harvest logging routes
app.include_router(harvest_router, prefix="/harvests", tags=["harvests"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
