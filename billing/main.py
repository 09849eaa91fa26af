# billing/main.py
from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from billing.services import config
from billing.services.bootstrap import ensure_default_admin
from billing.services.errors import BillingError
from billing.utils.request_id import RequestIDMiddleware

# ── Import routers ──
from billing.api import (
    agent_bills,
    banks,
    bills,
    dollar_rates,
    group_admin_numbers,
    group_bank_rates,
    group_employee_numbers,
    groups,
    other_bills,
    payment_methods,
    processing_calculations,
    processing_group_calculations,
    transaction_details,
    users,
    health as health_api,
)

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("billing")

# ── App ──
app = FastAPI(title="Billing", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)


# ── Error rendering: {"message": ..., **payload} ──
@app.exception_handler(BillingError)
async def billing_error_handler(_request: Request, exc: BillingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ── Startup: default admin ──
@app.on_event("startup")
async def on_startup() -> None:
    logger.info("Starting billing API (env=%s)", config.ENV)
    if config.BOOTSTRAP_ADMIN:
        try:
            ensure_default_admin()
        except Exception:
            logger.exception("Default admin bootstrap failed")
            raise


# ── Mount all routers under /api ──
app.include_router(users.router, prefix="/api")
app.include_router(banks.router, prefix="/api")
app.include_router(groups.router, prefix="/api")
app.include_router(group_bank_rates.router, prefix="/api")
app.include_router(group_admin_numbers.router, prefix="/api")
app.include_router(group_employee_numbers.router, prefix="/api")
app.include_router(dollar_rates.router, prefix="/api")
app.include_router(payment_methods.router, prefix="/api")
app.include_router(transaction_details.router, prefix="/api")
app.include_router(processing_calculations.router, prefix="/api")
app.include_router(processing_group_calculations.router, prefix="/api")
app.include_router(other_bills.router, prefix="/api")
app.include_router(bills.router, prefix="/api")
app.include_router(agent_bills.router, prefix="/api")
app.include_router(health_api.router, prefix="")   # /healthz, /readyz


@app.get("/")
def root() -> dict:
    return {"status": "OK", "api": "/api"}


def run() -> None:
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
