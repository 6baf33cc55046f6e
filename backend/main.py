from datetime import datetime, timezone

from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.logging import configure_logging
from db.database import create_db_and_tables
from routers.items import router as items_router
from routers.movements import router as movements_router
from routers.returns import router as returns_router
from routers.sales import router as sales_router
from contextlib import asynccontextmanager
from schemas.users import UserRead, UserCreate, UserUpdate

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Inventory API",
    description="Stock items, sales, returns and the stock movement ledger",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["system"])
async def root():
    return {
        "status": "success",
        "message": "Inventory App API",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health", tags=["system"])
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/api/auth/jwt", tags=["auth"])
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/api/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/api/users", tags=["users"])

# Inventory routes
app.include_router(items_router, prefix="/api/items", tags=["items"])
app.include_router(sales_router, prefix="/api/sales", tags=["sales"])
app.include_router(returns_router, prefix="/api/returns", tags=["returns"])
app.include_router(movements_router, prefix="/api/movements", tags=["movements"])

if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=True)
