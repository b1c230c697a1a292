from marshmallow import Schema, fields


class UserOutSchema(Schema):
    """Public projection returned by registration; never includes the hash."""
    id = fields.Integer(allow_none=False)
    username = fields.String(allow_none=False)
    email = fields.String(allow_none=True)


class CurrentUserOutSchema(Schema):
    id = fields.Integer(allow_none=False)
    username = fields.String(allow_none=False)
    roles = fields.List(fields.String())


class UserListOutSchema(Schema):
    id = fields.Integer(allow_none=False)
    username = fields.String(allow_none=False)
    email = fields.String(allow_none=True)
    roles = fields.Method("get_roles")
    created_at = fields.DateTime()

    def get_roles(self, obj):
        return list(getattr(obj, "role_names", []))
