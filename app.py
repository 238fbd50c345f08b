import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request
from flask_migrate import Migrate
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from config import Config
from models import db, login_manager
from services.cash_errors import CashError


migrate = Migrate()


def _friendly_db_error(e: Exception) -> str:
    msg = str(e).lower()
    if "no such table" in msg or "does not exist" in msg:
        return "Base de datos no inicializada o migraciones pendientes. Ejecuta: flask db upgrade"
    return "Error de base de datos. Revisa logs/app.log"


def _setup_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    loggers = [app.logger, logging.getLogger("services")]

    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            maxBytes=2_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))
        for lg in loggers:
            if not any(isinstance(h, RotatingFileHandler) for h in lg.handlers):
                lg.addHandler(file_handler)

    for lg in loggers:
        lg.setLevel(level)


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    # -------------------------
    # Extensiones
    # -------------------------
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"error": "Unauthorized", "message": "Inicia sesión para continuar."}), 401

    # -------------------------
    # Importar modelos (Alembic)
    # -------------------------
    from models.branch import Branch  # noqa: F401
    from models.user import User  # noqa: F401
    from models.membership import BranchUser  # noqa: F401
    from models.finance_category import FinanceCategory  # noqa: F401

    # Caja
    from models.cash_day import CashDay, CashDayNote  # noqa: F401
    from models.cash_movement import CashMovement  # noqa: F401

    # -------------------------
    # Blueprints
    # -------------------------
    from routes import auth_bp
    import routes.auth  # noqa: F401  (registra las vistas en auth_bp)
    from routes.cash import cash_bp

    for bp in (auth_bp, cash_bp):
        app.register_blueprint(bp)

    # -------------------------
    # Logging + manejo global de errores
    # -------------------------
    _setup_logging(app)

    @app.errorhandler(CashError)
    def _handle_cash_error(e: CashError):
        db.session.rollback()
        app.logger.info("%s %s -> %s: %s", request.method, request.path, e.kind, e.message)
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(OperationalError)
    def _handle_db_error(e: OperationalError):
        db.session.rollback()
        app.logger.exception("Error de base de datos: %s %s", request.method, request.path)
        return jsonify({"error": "DatabaseError", "message": _friendly_db_error(e)}), 503

    @app.errorhandler(HTTPException)
    def _handle_http(e: HTTPException):
        return jsonify({"error": e.name, "message": e.description}), e.code

    @app.errorhandler(Exception)
    def _handle_500(e: Exception):
        db.session.rollback()
        app.logger.exception("Error 500 no manejado: %s %s", request.method, request.path)
        return jsonify({"error": "InternalError", "message": "Ocurrió un error interno. El problema fue registrado."}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    # Debug controlado por config / variables de entorno
    app.run(debug=app.config.get("DEBUG", False))
