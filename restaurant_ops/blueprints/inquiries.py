"""Inquiries blueprint: JSON endpoints over InquiryService."""
from flask import Blueprint, jsonify, request

from restaurant_ops.blueprints._request import actor, json_body
from restaurant_ops.services.inquiry_service import InquiryService
from restaurant_ops.utils.serializers import inquiry_to_dict, note_to_dict, status_change_to_dict

inquiries_bp = Blueprint('inquiries', __name__, url_prefix='/inquiries')


@inquiries_bp.route('', methods=['GET'])
def list_inquiries():
    """List inquiries with optional status, priority and search filters."""
    inquiries = InquiryService.from_app().list_inquiries(
        status=request.args.get('status'),
        priority=request.args.get('priority'),
        search=request.args.get('q'),
    )
    return jsonify({'inquiries': [inquiry_to_dict(inquiry) for inquiry in inquiries]})


@inquiries_bp.route('', methods=['POST'])
def create_inquiry():
    inquiry = InquiryService.from_app().create_inquiry(json_body(), actor=actor())
    return jsonify(inquiry_to_dict(inquiry)), 201


@inquiries_bp.route('/statistics', methods=['GET'])
def inquiry_statistics():
    return jsonify(InquiryService.from_app().statistics())


@inquiries_bp.route('/<int:inquiry_id>', methods=['GET'])
def get_inquiry(inquiry_id):
    inquiry = InquiryService.from_app().get_inquiry(inquiry_id)
    return jsonify(inquiry_to_dict(inquiry, include_notes=True))


@inquiries_bp.route('/<int:inquiry_id>', methods=['PATCH'])
def update_inquiry(inquiry_id):
    inquiry = InquiryService.from_app().update_inquiry(inquiry_id, json_body())
    return jsonify(inquiry_to_dict(inquiry))


@inquiries_bp.route('/<int:inquiry_id>/status', methods=['POST'])
def change_status(inquiry_id):
    data = json_body()
    inquiry = InquiryService.from_app().change_status(
        inquiry_id, data.get('status'), actor=actor(), reason=data.get('reason'),
    )
    return jsonify(inquiry_to_dict(inquiry))


@inquiries_bp.route('/<int:inquiry_id>/notes', methods=['POST'])
def add_note(inquiry_id):
    data = json_body()
    note = InquiryService.from_app().add_note(inquiry_id, data.get('body'), author=data.get('author') or actor())
    return jsonify(note_to_dict(note)), 201


@inquiries_bp.route('/<int:inquiry_id>/reactivate', methods=['POST'])
def reactivate(inquiry_id):
    """Administrative override reopening a closed inquiry."""
    data = json_body()
    inquiry = InquiryService.from_app().reactivate(
        inquiry_id, data.get('status'), actor=data.get('actor') or actor(), reason=data.get('reason'),
    )
    return jsonify(inquiry_to_dict(inquiry, include_notes=True))


@inquiries_bp.route('/<int:inquiry_id>/history', methods=['GET'])
def inquiry_history(inquiry_id):
    changes = InquiryService.from_app().status_history(inquiry_id)
    return jsonify({'history': [status_change_to_dict(change) for change in changes]})
