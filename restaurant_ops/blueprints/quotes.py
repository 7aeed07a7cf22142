"""Quotes blueprint: JSON endpoints over QuoteService."""
from flask import Blueprint, jsonify, request

from restaurant_ops.blueprints._request import actor, expected_version, json_body
from restaurant_ops.services.quote_service import QuoteService
from restaurant_ops.utils.serializers import quote_to_dict, result_to_dict, status_change_to_dict

quotes_bp = Blueprint('quotes', __name__, url_prefix='/quotes')


@quotes_bp.route('', methods=['GET'])
def list_quotes():
    """List quotes with optional status, inquiry and search filters."""
    service = QuoteService.from_app()
    quotes = service.list_quotes(
        status=request.args.get('status'),
        inquiry_id=request.args.get('inquiry_id', type=int),
        search=request.args.get('q'),
    )
    return jsonify({'quotes': [quote_to_dict(quote) for quote in quotes]})


@quotes_bp.route('', methods=['POST'])
def create_quote():
    data = json_body()
    result = QuoteService.from_app().create(
        data.get('inquiry_id'),
        line_items=data.get('line_items'),
        config={key: data[key] for key in ('tax_rate', 'deposit_type', 'deposit_value') if key in data},
        valid_until=data.get('valid_until'),
        deposit_due_date=data.get('deposit_due_date'),
        terms=data.get('terms'),
        notes=data.get('notes'),
        actor=actor(),
    )
    return jsonify(result_to_dict(result)), 201


@quotes_bp.route('/statistics', methods=['GET'])
def quote_statistics():
    stats = QuoteService.from_app().statistics()
    stats['total_value'] = str(stats['total_value'])
    stats['average_value'] = str(stats['average_value'])
    stats['acceptance_rate'] = str(stats['acceptance_rate'])
    return jsonify(stats)


@quotes_bp.route('/<int:quote_id>', methods=['GET'])
def get_quote(quote_id):
    return jsonify(result_to_dict(QuoteService.from_app().get(quote_id)))


@quotes_bp.route('/<int:quote_id>', methods=['PATCH'])
def update_quote(quote_id):
    """Edit a DRAFT or SENT quote. Editing a SENT quote reverts it to DRAFT."""
    data = json_body()
    version = expected_version(data)
    patch = {key: value for key, value in data.items() if key != 'version'}
    result = QuoteService.from_app().update(quote_id, patch, expected_version=version, actor=actor())
    return jsonify(result_to_dict(result))


@quotes_bp.route('/<int:quote_id>/send', methods=['POST'])
def send_quote(quote_id):
    data = json_body()
    result = QuoteService.from_app().send(quote_id, expected_version=expected_version(data), actor=actor())
    return jsonify(result_to_dict(result))


@quotes_bp.route('/<int:quote_id>/accept', methods=['POST'])
def accept_quote(quote_id):
    data = json_body()
    result = QuoteService.from_app().accept(quote_id, expected_version=expected_version(data), actor=actor())
    return jsonify(result_to_dict(result))


@quotes_bp.route('/<int:quote_id>/decline', methods=['POST'])
def decline_quote(quote_id):
    data = json_body()
    result = QuoteService.from_app().decline(
        quote_id, reason=data.get('reason'), expected_version=expected_version(data), actor=actor(),
    )
    return jsonify(result_to_dict(result))


@quotes_bp.route('/<int:quote_id>/payments', methods=['POST'])
def record_payment(quote_id):
    """Record a payment; overpayment comes back as a warning, not an error."""
    data = json_body()
    version = expected_version(data)
    payment = {key: value for key, value in data.items() if key != 'version'}
    result = QuoteService.from_app().record_payment(quote_id, payment, expected_version=version, actor=actor())
    return jsonify(result_to_dict(result)), 201


@quotes_bp.route('/<int:quote_id>/payment-status', methods=['POST'])
def apply_payment_status(quote_id):
    data = json_body()
    result = QuoteService.from_app().apply_payment_status(
        quote_id, data.get('status'), expected_version=expected_version(data), actor=actor(),
    )
    return jsonify(result_to_dict(result))


@quotes_bp.route('/<int:quote_id>/revise', methods=['POST'])
def revise_quote(quote_id):
    result = QuoteService.from_app().revise(quote_id, actor=actor())
    return jsonify(result_to_dict(result)), 201


@quotes_bp.route('/<int:quote_id>/history', methods=['GET'])
def quote_history(quote_id):
    changes = QuoteService.from_app().status_history(quote_id)
    return jsonify({'history': [status_change_to_dict(change) for change in changes]})
