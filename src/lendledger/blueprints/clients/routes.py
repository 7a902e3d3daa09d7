"""Client routes."""

from __future__ import annotations

from flask import jsonify

from ...extensions import get_client_service
from ...services.serialization import model_to_dict, serialize_value
from ..validation import json_body
from . import bp
from .forms import ClientForm


def _validated_form() -> ClientForm:
    form = ClientForm.from_mapping(json_body())
    form.validate()
    form.raise_for_errors()
    return form


@bp.get("")
def list_clients():
    return jsonify([model_to_dict(client) for client in get_client_service().list_clients()])


@bp.post("")
def create_client():
    client = get_client_service().create_client(_validated_form().to_data())
    return jsonify(model_to_dict(client)), 201


@bp.get("/<int:client_id>")
def get_client(client_id: int):
    return jsonify(model_to_dict(get_client_service().get_client(client_id)))


@bp.put("/<int:client_id>")
def update_client(client_id: int):
    client = get_client_service().update_client(client_id, _validated_form().to_data())
    return jsonify(model_to_dict(client))


@bp.delete("/<int:client_id>")
def delete_client(client_id: int):
    """Delete a client; refused while the client owns loans."""

    get_client_service().delete_client(client_id)
    return "", 204


@bp.get("/<int:client_id>/total-paid")
def client_total_paid(client_id: int):
    total = get_client_service().total_paid(client_id)
    return jsonify({"client_id": client_id, "total_paid": serialize_value(total)})
