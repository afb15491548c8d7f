import logging
import os

from fastapi import FastAPI

from db import create_db_and_tables
from routers import auth, listings, notifications, requests, users

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="ShareLine")


@app.on_event("startup")
def on_startup() -> None:
    create_db_and_tables()


@app.get("/")
def read_root():
    return {"app": "ShareLine", "status": "ok"}


app.include_router(auth.router)
app.include_router(users.router, prefix="/users")
app.include_router(listings.router, prefix="/listings")
app.include_router(requests.router, prefix="/requests")
app.include_router(notifications.router, prefix="/notifications")
