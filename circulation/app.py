#!/usr/bin/env python3

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from circulation.core import db
from circulation.routes import api
from circulation.configs import OPTIONS, CORS_ORIGINS, LOG_LEVEL
from circulation import __version__ as VERSION

logging.basicConfig(level=LOG_LEVEL.upper())

db.init()

app = FastAPI(
    title="Circulation API",
    description="Circulation: borrowing lifecycle and inventory for libraries",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api.router, prefix="/v1/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("circulation.app:app", **OPTIONS)
