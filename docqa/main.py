"""Main Quart application for the document question-answering service."""
import logging
from typing import Optional

from quart import Quart, request, jsonify
from quart_cors import cors
from werkzeug.exceptions import HTTPException
import structlog

from docqa import config
from docqa.errors import DocQAError, MissingQuestionError, NoFileError, UnknownError
from docqa.rag.extractor import resolve_media_type
from docqa.services import Services, build_services

logger = structlog.get_logger()


def configure_logging(level: str = None) -> None:
    """Configure structured JSON logging through the stdlib logging module."""
    logging.basicConfig(format="%(message)s", level=level or config.LOG_LEVEL)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def create_app(
    services: Optional[Services] = None,
    expose_error_details: Optional[bool] = None,
) -> Quart:
    """Create the Quart app around an explicit set of services.

    Args:
        services: Wired clients and pipelines (built from config if omitted)
        expose_error_details: Include exception details in 500 responses
            (defaults to config.EXPOSE_ERROR_DETAILS)
    """
    services = services or build_services()

    app = Quart(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_MB * 1024 * 1024
    app.config["EXPOSE_ERROR_DETAILS"] = (
        config.EXPOSE_ERROR_DETAILS if expose_error_details is None else expose_error_details
    )

    app = cors(
        app,
        allow_origin=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    def error_response(error: DocQAError, cause: Optional[BaseException] = None):
        """Build a JSON error body, with details for server errors outside production."""
        body = {"error": error.message}
        cause = cause or error.__cause__
        if error.status_code >= 500 and cause is not None and app.config["EXPOSE_ERROR_DETAILS"]:
            body["details"] = f"{type(cause).__name__}: {cause}"
        return jsonify(body), error.status_code

    @app.before_serving
    async def startup():
        """Initialize clients and stores before accepting traffic."""
        logger.info("service_starting", vector_backend=config.VECTOR_BACKEND)
        await services.initialize()

    @app.route("/upload", methods=["POST"])
    async def upload():
        """Extract, chunk, embed and index an uploaded document.

        Expects multipart form data with a "file" field.

        Returns JSON:
        {
            "message": "...",
            "namespace": "uuid",
            "chunks": 3
        }
        """
        try:
            files = await request.files
            uploaded = files.get("file")

            if uploaded is None or not uploaded.filename:
                raise NoFileError()

            file_name = uploaded.filename
            media_type = resolve_media_type(file_name, uploaded.mimetype)
            data = uploaded.read()

            logger.info(
                "upload_request_received",
                file_name=file_name,
                media_type=media_type,
                byte_count=len(data),
            )

            result = await services.pipeline.ingest_document(file_name, data, media_type)

            return jsonify({
                "message": "Document uploaded and processed successfully.",
                "namespace": result.namespace,
                "chunks": result.chunk_count,
            }), 200

        except DocQAError as e:
            logger.error(
                "upload_failed",
                error=str(e),
                error_type=type(e).__name__,
                status_code=e.status_code,
            )
            return error_response(e)
        except HTTPException:
            # 413 and friends go to the app error handlers
            raise
        except Exception as e:
            logger.error("upload_endpoint_error", error=str(e), error_type=type(e).__name__)
            return error_response(UnknownError("Error processing document."), cause=e)

    @app.route("/query", methods=["POST"])
    async def query():
        """Answer a question from the uploaded documents.

        Expects JSON body:
        {
            "question": "user question"
        }

        Returns JSON:
        {
            "answer": "...",
            "sources": [{"fileName": "...", "text": "...", "score": 0.83}, ...]
        }
        """
        try:
            data = await request.get_json(silent=True)
            question = data.get("question") if isinstance(data, dict) else None

            if not isinstance(question, str) or not question.strip():
                raise MissingQuestionError()

            result = await services.retriever.answer(question)

            logger.info(
                "query_response_sent",
                source_count=len(result.sources),
                answer_length=len(result.answer),
            )
            return jsonify(result.to_dict()), 200

        except DocQAError as e:
            logger.error(
                "query_failed",
                error=str(e),
                error_type=type(e).__name__,
                status_code=e.status_code,
            )
            return error_response(e)
        except HTTPException:
            # 413 and friends go to the app error handlers
            raise
        except Exception as e:
            logger.error("query_endpoint_error", error=str(e), error_type=type(e).__name__)
            return error_response(UnknownError("Error querying documents."), cause=e)

    @app.route("/documents", methods=["GET"])
    async def list_documents():
        """List uploaded documents and their namespaces, newest first.

        Returns JSON:
        {
            "documents": [
                {"namespace": "uuid", "fileName": "...", "mediaType": "pdf",
                 "chunkCount": 3, "createdAt": "timestamp"},
                ...
            ]
        }
        """
        try:
            documents = services.registry.list_documents()
            return jsonify({
                "documents": [
                    {
                        "namespace": doc["namespace"],
                        "fileName": doc["file_name"],
                        "mediaType": doc["media_type"],
                        "chunkCount": doc["chunk_count"],
                        "createdAt": doc["created_at"],
                    }
                    for doc in documents
                ]
            })

        except Exception as e:
            logger.error("documents_list_error", error=str(e))
            return jsonify({"error": "Failed to list documents"}), 500

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check if app can serve requests.

        Checks:
        - Gemini API is reachable with the configured key
        - Vector store answers a namespace listing
        """
        checks = {
            "status": "healthy",
            "provider": False,
            "vector_store": False,
        }

        try:
            await services.generator.list_models()
            checks["provider"] = True

            namespaces = await services.vector_store.list_namespaces()
            checks["vector_store"] = True
            checks["namespaces"] = len(namespaces)

            return jsonify(checks), 200

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    async def too_large(error):
        """Handle uploads over MAX_CONTENT_LENGTH."""
        return jsonify({"error": f"File too large (max {config.MAX_UPLOAD_MB} MB)"}), 413

    @app.errorhandler(500)
    async def internal_error(error):
        """Handle 500 errors."""
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


configure_logging()

app = create_app()


if __name__ == "__main__":
    # For development - use hypercorn in production:
    #   hypercorn docqa.main:app --bind 0.0.0.0:3000
    app.run(host=config.HOST, port=config.PORT, debug=config.EXPOSE_ERROR_DETAILS)
