# Overview: Flask API routes for shipments (arrivages); parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import arrivage_service, products_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, error_response, internal_error, json_body


shipments_bp = Blueprint("shipments", __name__, url_prefix="/api/shipments")


@shipments_bp.get("")
@require_auth
@require_permission("ARRIVAGES_READ")
def list_shipments_route():
    items = arrivage_service.list_arrivages(
        g.org_id,
        status=request.args.get("status"),
        source=request.args.get("source"),
    )
    return jsonify({"items": [a.to_dict() for a in items], "count": len(items)}), 200


@shipments_bp.post("")
@require_auth
@require_permission("ARRIVAGES_CREATE")
def create_shipment_route():
    try:
        arrivage = arrivage_service.create_arrivage(g.org_id, json_body())
        return jsonify({"shipment": arrivage.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create shipment")


@shipments_bp.get("/<int:arrivage_id>")
@require_auth
@require_permission("ARRIVAGES_READ")
def get_shipment_route(arrivage_id: int):
    try:
        arrivage = arrivage_service.get_arrivage(arrivage_id, g.org_id)
        products = arrivage_service.list_products(arrivage_id, g.org_id)
        data = arrivage.to_dict()
        data["products"] = products_service.serialize_products(products, g.org_id)
        return jsonify({"shipment": data}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@shipments_bp.put("/<int:arrivage_id>")
@require_auth
@require_permission("ARRIVAGES_UPDATE")
def update_shipment_route(arrivage_id: int):
    try:
        arrivage = arrivage_service.update_arrivage(arrivage_id, g.org_id, json_body())
        return jsonify({"shipment": arrivage.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update shipment")


@shipments_bp.delete("/<int:arrivage_id>")
@require_auth
@require_permission("ARRIVAGES_DELETE")
def delete_shipment_route(arrivage_id: int):
    try:
        arrivage_service.delete_arrivage(arrivage_id, g.org_id)
        return jsonify({"ok": True}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete shipment")


@shipments_bp.get("/<int:arrivage_id>/items")
@require_auth
@require_permission("ARRIVAGES_READ")
def list_items_route(arrivage_id: int):
    try:
        products = arrivage_service.list_products(arrivage_id, g.org_id)
        return jsonify({"items": products_service.serialize_products(products, g.org_id)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@shipments_bp.post("/<int:arrivage_id>/items")
@require_auth
@require_permission("ARRIVAGES_UPDATE")
def add_item_route(arrivage_id: int):
    """
    {product_id} (or productId) links an existing product; any other body creates a new
    product received in this shipment (quantity_received, prices, ...).
    """
    payload = json_body()
    if "productId" in payload:
        payload["product_id"] = payload.pop("productId")
    try:
        if "product_id" in payload:
            product = arrivage_service.link_product(arrivage_id, g.org_id, payload["product_id"])
        else:
            arrivage_service.get_arrivage(arrivage_id, g.org_id)
            payload = dict(payload, arrivage_id=arrivage_id)
            product = products_service.create_product(g.org_id, payload)
        return jsonify({"product": products_service.serialize_products([product], g.org_id)[0]}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to add shipment item")


@shipments_bp.get("/<int:arrivage_id>/stats")
@require_auth
@require_permission("ARRIVAGES_READ")
def shipment_stats_route(arrivage_id: int):
    try:
        return jsonify(arrivage_service.arrivage_stats(arrivage_id, g.org_id)), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
