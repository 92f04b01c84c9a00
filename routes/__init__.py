from flask import jsonify, request

from errors import ValidationError


def ok(data=None, message=None, status=200):
    """Wrap ``data`` in the standard success envelope."""
    body = {"success": True, "data": data if data is not None else {}}
    if message:
        body["message"] = message
    return jsonify(body), status


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def paginate(query):
    """Apply ``page``/``limit`` query args; return (items, pagination dict)."""
    page = max(request.args.get("page", 1, type=int) or 1, 1)
    limit = min(max(request.args.get("limit", 10, type=int) or 10, 1), 100)
    total = query.count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": -(-total // limit),
    }
