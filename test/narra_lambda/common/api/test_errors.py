from test.base import BaseTest

from narra_lambda.common.api.errors import (
    ApiError,
    ConfigurationError,
    ForbiddenError,
    MethodNotAllowedError,
    NotFoundError,
    RequestValidationError,
    UnauthorizedError,
    UpstreamError,
)


class ApiErrorTests(BaseTest):
    def test__defaults__map_to_http_statuses(self):
        self.assertEqual(ConfigurationError().status_code, 500)
        self.assertEqual(RequestValidationError().status_code, 400)
        self.assertEqual(UnauthorizedError().status_code, 401)
        self.assertEqual(ForbiddenError().status_code, 403)
        self.assertEqual(NotFoundError().status_code, 404)
        self.assertEqual(MethodNotAllowedError().status_code, 405)
        self.assertEqual(UpstreamError().status_code, 500)

    def test__to_body__merges_extra_fields(self):
        error = RequestValidationError("Token no proporcionado", valid=False)

        self.assertEqual(error.to_body(), {"error": "Token no proporcionado", "valid": False})

    def test__status_code__can_be_overridden(self):
        error = UpstreamError("Realtime session failed", status_code=502, upstream_status=504)

        self.assertEqual(error.status_code, 502)
        self.assertEqual(error.upstream_status, 504)
        self.assertIsInstance(error, ApiError)
        self.assertEqual(str(error), "Realtime session failed")
