from __future__ import annotations

from flask import Blueprint, current_app

from config import APP_NAME, APP_VERSION
from utils.json_helpers import jok

meta_bp = Blueprint("meta", __name__)


# =========================
# Meta / Health
# =========================
@meta_bp.get("/health")
def health():
    gateway = current_app.config["LLM_GATEWAY"]
    return jok(
        {
            "status": "ok",
            "name": APP_NAME,
            "version": APP_VERSION,
            "openai": bool(getattr(gateway, "online", False)),
            "catalog_size": len(current_app.config["QUESTIONNAIRE_CATALOG"]),
        }
    )


@meta_bp.get("/version")
def version():
    return jok({"name": APP_NAME, "version": APP_VERSION})
