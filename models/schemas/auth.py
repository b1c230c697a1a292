from marshmallow import Schema, fields, pre_load, validate


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class UsernameSchema(Schema):
    """Login and registration must normalise usernames the same way."""
    username = fields.String(required=True, validate=validate.Length(min=1, max=64))

    @pre_load
    def normalize_username(self, data, **kwargs):
        if isinstance(data, dict) and "username" in data:
            data = dict(data)
            data["username"] = _strip(data["username"])
        return data


class LoginSchema(UsernameSchema):
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class RegistrationSchema(UsernameSchema):
    username = fields.String(required=True, validate=validate.Length(min=3, max=64))
    email = fields.Email(load_default=None, allow_none=True)
    # length is enforced by AuthService.register, after the confirmation check
    password = fields.String(required=True, load_only=True)
    confirm_password = fields.String(required=True, load_only=True, data_key="confirmPassword")

    @pre_load
    def normalize_email(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("email"), str):
            data = dict(data)
            data["email"] = data["email"].strip().lower() or None
        return data


class TokenPairSchema(Schema):
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
