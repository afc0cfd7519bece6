from flask import Flask, request, send_file, abort, jsonify
from io import BytesIO
import logging

from pydantic import ValidationError

from document_core.config import get_settings
from document_core.errors import MissingDataError
from document_core.models import DocumentKind, GenerationRequest
from document_core.numbering import NumberingAllocator, format_document_number
from document_core.service import DocumentService
from document_core.storage import LocalAssetStore

logger = logging.getLogger(__name__)


def create_app(settings=None, service=None):
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if service is None:
        allocator = NumberingAllocator.from_url(settings.database_url)
        service = DocumentService(allocator, LocalAssetStore(settings.asset_dir), settings)

    app = Flask(__name__)
    app.extensions["document_service"] = service

    def generate(flow):
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return abort(400, "Expected a JSON object.")
        key = request.headers.get("X-Idempotency-Key", "").strip()
        if key:
            payload.pop("idempotencyKey", None)
            payload["idempotency_key"] = key
        try:
            req = GenerationRequest.model_validate(payload)
        except ValidationError as e:
            return abort(400, f"Invalid document data ({e.error_count()} error(s)).")

        try:
            doc = service.generate(flow, req)
        except MissingDataError as e:
            return abort(422, str(e))
        except Exception:
            # log full stack, the client only gets a generic message
            logger.exception("ERROR generating %s", flow)
            return abort(500, "Server error while generating document.")

        response = send_file(BytesIO(doc.pdf),
                             mimetype="application/pdf",
                             as_attachment=True,
                             download_name=doc.filename)
        if doc.record.number:
            response.headers["X-Document-Number"] = doc.record.number
        response.headers["X-Committed"] = "true" if doc.committed else "false"
        response.headers["X-Gross-Total"] = str(doc.record.gross_total)
        return response

    @app.post("/offers")
    def offers():
        return generate("offer")

    @app.post("/order-confirmations")
    def order_confirmations():
        return generate("order_confirmation")

    @app.post("/invoices")
    def invoices():
        return generate("invoice")

    @app.post("/invoices/from-order")
    def invoices_from_order():
        return generate("invoice_from_order")

    @app.get("/numbers/<kind>/next")
    def next_number(kind):
        """Preview the next number without consuming it."""
        try:
            kind = DocumentKind(kind)
        except ValueError:
            return abort(404, "Unknown document kind.")
        owner_id = request.args.get("owner_id")
        if not owner_id:
            return abort(400, "owner_id is required.")
        start = request.args.get("start", default=0, type=int)
        value = service.allocator.peek(owner_id, kind, start=start)
        number = format_document_number(request.args.get("prefix", ""), value, request.args.get("suffix", ""))
        return jsonify({"kind": kind.value, "next_number": number})

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8080)
