"""
Buyer routes — JSON API for leads, plus CSV import/export.

Every handler acts as g.user (set by the auth hook in create_app). Domain
errors raised by the services are turned into JSON responses by a single
error handler, so handlers only deal with the happy path.
"""
import logging

from flask import Blueprint, Response, current_app, g, jsonify, request, stream_with_context

from buyerleads.errors import BuyerError, FieldError, RateLimitError, ValidationError
from buyerleads.services.buyers import (
    create_buyer, delete_buyer, get_buyer, get_history, list_buyers, update_buyer,
)
from buyerleads.services.exporter import export_filename, iter_export_csv
from buyerleads.services.importer import import_batch, import_csv
from buyerleads.services.validation import parse_filters

logger = logging.getLogger('routes.buyers')

bp = Blueprint('buyers', __name__, url_prefix='/api/buyers')


@bp.errorhandler(BuyerError)
def handle_buyer_error(error):
    if error.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.path, error)
    response = jsonify(error.to_dict())
    response.status_code = error.status_code
    if isinstance(error, RateLimitError) and error.retry_after:
        response.headers['Retry-After'] = str(int(error.retry_after + 0.999))
    return response


def _rate_limit():
    current_app.extensions['rate_limiter'].enforce(g.user.id)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError([FieldError('body', 'Expected a JSON object')])
    return data


# ── Listing / detail ─────────────────────────────────────────────────────────

@bp.route('', methods=['GET'])
def list_buyers_route():
    """Filtered, paginated listing. Query: city, propertyType, status, timeline, search, page."""
    filters = parse_filters(request.args.to_dict())
    return jsonify(list_buyers(filters))


@bp.route('/<buyer_id>', methods=['GET'])
def get_buyer_route(buyer_id):
    return jsonify(get_buyer(buyer_id, g.user))


@bp.route('/<buyer_id>/history', methods=['GET'])
def get_history_route(buyer_id):
    return jsonify({'history': get_history(buyer_id)})


# ── Mutations ────────────────────────────────────────────────────────────────

@bp.route('', methods=['POST'])
def create_buyer_route():
    _rate_limit()
    record = create_buyer(_json_body(), g.user)
    return jsonify(record), 201


@bp.route('/<buyer_id>', methods=['PATCH', 'PUT'])
def update_buyer_route(buyer_id):
    """Partial update. The body must carry the updatedAt the client last saw."""
    _rate_limit()
    data = dict(_json_body())
    expected_updated_at = data.pop('updatedAt', None)
    record = update_buyer(buyer_id, data, expected_updated_at, g.user)
    return jsonify(record)


@bp.route('/<buyer_id>', methods=['DELETE'])
def delete_buyer_route(buyer_id):
    delete_buyer(buyer_id, g.user)
    return jsonify({'ok': True})


# ── Import / export ──────────────────────────────────────────────────────────

@bp.route('/import', methods=['POST'])
def import_route():
    """
    Accepts a JSON body {"buyers": [...]}, a multipart upload in field "file",
    or a raw text/csv body. Answers with accepted count, rejected rows and ids.
    """
    _rate_limit()

    if request.mimetype == 'text/csv':
        result = import_csv(request.get_data(as_text=True), g.user)
    elif request.mimetype == 'multipart/form-data':
        upload = request.files.get('file')
        if upload is None:
            raise ValidationError([FieldError('file', 'No file uploaded')])
        result = import_csv(upload.read().decode('utf-8-sig', errors='replace'), g.user)
    else:
        data = _json_body()
        rows = data.get('buyers')
        if not isinstance(rows, list):
            raise ValidationError([FieldError('buyers', 'Expected a list of rows')])
        result = import_batch(rows, g.user)

    return jsonify(result.to_dict())


@bp.route('/export', methods=['GET'])
def export_route():
    """CSV of every buyer matching the listing filters, streamed."""
    filters = parse_filters(request.args.to_dict())
    response = Response(stream_with_context(iter_export_csv(filters)), mimetype='text/csv')
    response.headers['Content-Disposition'] = f'attachment; filename="{export_filename()}"'
    return response
