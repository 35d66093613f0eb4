from donation_api.config import ACCESS_TOKEN_TTL


def test_token_lifetime_exposed_in_openapi(openapi_schema):
    oauth2 = openapi_schema["components"]["securitySchemes"]["OAuth2PasswordBearer"]
    assert oauth2["flows"]["password"]["tokenUrl"] == "auth/login"
    assert str(ACCESS_TOKEN_TTL) in oauth2.get("description", "")
