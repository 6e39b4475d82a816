# Overview: Flask API routes for categories, brands and suppliers.

from flask import Blueprint, jsonify, g

from ..models import Brand, Category, Supplier
from ..services import catalog_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, error_response, internal_error, json_body


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")

# url segment -> (model, read permission, write permission)
RESOURCES = {
    "categories": (Category, "PRODUCTS_READ", "PRODUCTS_UPDATE"),
    "brands": (Brand, "PRODUCTS_READ", "PRODUCTS_UPDATE"),
    "suppliers": (Supplier, "ARRIVAGES_READ", "ARRIVAGES_UPDATE"),
}


def _register(resource: str, model, read_perm: str, write_perm: str) -> None:
    @require_auth
    @require_permission(read_perm)
    def list_route():
        items = catalog_service.list_items(model, g.org_id)
        return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200

    @require_auth
    @require_permission(write_perm)
    def create_route():
        try:
            item = catalog_service.create_item(model, g.org_id, json_body())
            return jsonify(item.to_dict()), 201
        except DOMAIN_ERRORS as e:
            return error_response(e)
        except Exception:
            return internal_error(f"Failed to create {resource}")

    @require_auth
    @require_permission(write_perm)
    def update_route(item_id: int):
        try:
            item = catalog_service.update_item(model, item_id, g.org_id, json_body())
            return jsonify(item.to_dict()), 200
        except DOMAIN_ERRORS as e:
            return error_response(e)
        except Exception:
            return internal_error(f"Failed to update {resource}")

    @require_auth
    @require_permission(write_perm)
    def delete_route(item_id: int):
        try:
            catalog_service.delete_item(model, item_id, g.org_id)
            return jsonify({"ok": True}), 200
        except DOMAIN_ERRORS as e:
            return error_response(e)
        except Exception:
            return internal_error(f"Failed to delete {resource}")

    catalog_bp.add_url_rule(f"/{resource}", f"list_{resource}", list_route, methods=["GET"])
    catalog_bp.add_url_rule(f"/{resource}", f"create_{resource}", create_route, methods=["POST"])
    catalog_bp.add_url_rule(f"/{resource}/<int:item_id>", f"update_{resource}", update_route, methods=["PUT"])
    catalog_bp.add_url_rule(f"/{resource}/<int:item_id>", f"delete_{resource}", delete_route, methods=["DELETE"])


for _resource, (_model, _read, _write) in RESOURCES.items():
    _register(_resource, _model, _read, _write)
