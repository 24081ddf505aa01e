import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from sqlalchemy.orm import Session
from app.config import get_settings
from app.database import create_tables, get_db
from app.routers import alerts, disputes, forecast, insights, mid_health, risk, trends, win_rate


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging(get_settings().log_level)
    create_tables()
    yield


app = FastAPI(
    title="Dispute Analytics API",
    description="Risk scoring, forecasting, trend detection and VAMP ratio monitoring for chargeback disputes.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(disputes.router, prefix="/api", tags=["Disputes"])
app.include_router(risk.router, prefix="/api", tags=["Risk"])
app.include_router(trends.router, prefix="/api", tags=["Trends"])
app.include_router(forecast.router, prefix="/api", tags=["Forecast"])
app.include_router(mid_health.router, prefix="/api", tags=["MID Health"])
app.include_router(win_rate.router, prefix="/api", tags=["Win Rate"])
app.include_router(alerts.router, prefix="/api", tags=["Alerts"])
app.include_router(insights.router, prefix="/api", tags=["Insights"])


@app.post("/api/seed", tags=["Seed"])
def seed_data(db: Session = Depends(get_db)):
    from scripts.seed_data import run_seed
    inserted = run_seed(db)
    return inserted
