from __future__ import annotations

import time
import uuid
from typing import Optional, Sequence

from flask import Flask, g, got_request_exception, request
from flask_cors import CORS

import config
from clients.openai_client import OpenAIGateway
from services.catalog import FieldDefinition, get_catalog
from services.questionnaire import QuestionnaireSession
from services.tool_chat_service import ToolSession
from storage.session_store import SessionStore
from utils.debug_events import debug_enabled, record_event
from utils.error_handlers import register_error_handlers


def create_app(
    *,
    catalog: Optional[Sequence[FieldDefinition]] = None,
    structured_store: Optional[SessionStore[QuestionnaireSession]] = None,
    tool_store: Optional[SessionStore[ToolSession]] = None,
    gateway: Optional[OpenAIGateway] = None,
    max_tool_steps: Optional[int] = None,
) -> Flask:
    app = Flask(__name__)
    app.secret_key = config.FLASK_SECRET
    CORS(app)

    active_catalog = catalog or get_catalog(config.QUESTIONNAIRE_CATALOG)
    app.config.update(
        QUESTIONNAIRE_CATALOG=active_catalog,
        STRUCTURED_STORE=structured_store or SessionStore(lambda: QuestionnaireSession(active_catalog), name="structured"),
        TOOL_STORE=tool_store or SessionStore(ToolSession, name="tools"),
        LLM_GATEWAY=gateway or OpenAIGateway.from_env(),
        MAX_TOOL_STEPS=max_tool_steps if max_tool_steps is not None else config.MAX_TOOL_STEPS,
    )

    @app.before_request
    def _debug_request_start():
        rid = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        g.request_id = rid
        g.request_start_ts = time.time()
        if debug_enabled():
            record_event(
                "request",
                f"{request.method} {request.path} start",
                data={"method": request.method, "path": request.path},
                request_id=rid,
            )

    @app.after_request
    def _debug_request_end(response):
        rid = getattr(g, "request_id", None)
        start_ts = getattr(g, "request_start_ts", None)
        duration_ms = int((time.time() - start_ts) * 1000) if start_ts else None
        response.headers["X-Request-Id"] = rid or response.headers.get("X-Request-Id", "")
        if debug_enabled():
            record_event(
                "request",
                f"{request.method} {request.path} end",
                data={"status": response.status_code, "duration_ms": duration_ms},
                request_id=rid,
            )
        return response

    def _log_exception(sender, exception, **extra):
        if not debug_enabled():
            return
        record_event(
            "error",
            f"{type(exception).__name__}",
            data={"error": str(exception), "path": request.path},
            request_id=getattr(g, "request_id", None),
            level="error",
        )

    got_request_exception.connect(_log_exception, app)

    # Register blueprints
    from routes.chat import chat_bp
    from routes.debug import debug_bp
    from routes.meta import meta_bp

    app.register_blueprint(chat_bp)
    app.register_blueprint(meta_bp)
    app.register_blueprint(debug_bp)

    register_error_handlers(app)
    config.log.info(
        "[App] ready catalog_size=%s openai=%s",
        len(active_catalog),
        bool(getattr(app.config["LLM_GATEWAY"], "online", False)),
    )
    return app


def main() -> None:
    app = create_app()
    config.log.info("Server running on port %s", config.PORT)
    app.run(host="0.0.0.0", port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
