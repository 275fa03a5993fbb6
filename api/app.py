# SPDX-License-Identifier: Apache-2.0

"""
Procedure Tracking API - Flask Application Entry Point

This module initializes the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the procedure repository used by the routes.
"""

import os
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from observability.config import setup_observability, SERVICE_NAME
from observability.middleware import add_observability_middleware

from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from models.base import utcnow
from services.hal import create_hal_formatter
from services.mongodb import MongoDBService, ProcedureRepository
from routes.procedures import procedures_bp

# Initialize observability first
setup_observability()

info = Info(
    title="Procedure Tracking API",
    version=os.getenv('SERVICE_VERSION', '1.0.0'),
    description="Study-abroad procedure tracking with HATEOAS Level-3 support"
)

health_tag = Tag(name="Health", description="System health and status")


def load_config() -> Dict[str, Any]:
    """Read application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': os.getenv('DOCS_ENABLED', 'true').lower() == 'true',
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'SERVICE_VERSION': os.getenv('SERVICE_VERSION', '1.0.0'),
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/procedures_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'procedures_dev'),
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
    }


def create_app(
    repository: Optional[ProcedureRepository] = None,
    config_overrides: Optional[Dict[str, Any]] = None
) -> OpenAPI:
    """
    Create the Flask application.

    Args:
        repository: Procedure repository to use (defaults to a MongoDB-backed one)
        config_overrides: Values replacing the environment configuration

    Returns:
        Configured OpenAPI (Flask) application
    """
    config = load_config()
    config.update(config_overrides or {})

    app = OpenAPI(__name__, info=info, doc_ui=config["DOCS_ENABLED"])
    app.config.update(config)

    add_observability_middleware(app)

    if repository is None:
        repository = ProcedureRepository(
            MongoDBService(app.config['MONGODB_URI'], app.config['MONGODB_DATABASE'])
        )

    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    ErrorHandlerMiddleware(app, app.config['BASE_URL'])
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.procedure_repository = repository
    app.hal_formatter = hal_formatter

    app.register_api(procedures_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Health check with MongoDB dependency status."""
        database = repository.health_check()
        healthy = database.get('status') == 'healthy'

        health_data = {
            "status": "healthy" if healthy else "unhealthy",
            "service": SERVICE_NAME,
            "version": app.config['SERVICE_VERSION'],
            "environment": app.config['ENVIRONMENT'],
            "timestamp": utcnow().isoformat(),
            "dependencies": {"mongodb": database}
        }

        links = {'self': hal_formatter.builder.link_builder.build_self_link('/api/healthz')}
        response = hal_formatter.builder.build_resource_response(health_data, links)
        return jsonify(response), 200 if healthy else 503

    return app


app = create_app()


if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
