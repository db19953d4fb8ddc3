from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from capital_curve_app.api.routes import router as api_router
from capital_curve_app.config import load_curve_config
from capital_curve_app.logger_config import setup_logging
from capital_curve_app.schemas import CurveConfig
from capital_curve_app.services.ledger import CurveLedger
from capital_curve_app.utils.json_safety import SafeJSONResponse


def create_app(config: Optional[CurveConfig] = None) -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Capital-Backed Bonding Curve",
        default_response_class=SafeJSONResponse,
    )

    # One ledger per app; handlers run on the event loop, so state changes are serialized
    app.state.ledger = CurveLedger(config or load_curve_config())

    # ── CORS (kept for local dev convenience) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://127.0.0.1:8000", "http://localhost:8000"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
