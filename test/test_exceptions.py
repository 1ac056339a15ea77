"""
Tests for custom exception classes and the error response body

Tests exception initialization, messages, status codes, and details.
"""

from fastapi import status

from subsites.exception_handlers import create_error_response, get_error_type
from subsites.exceptions import (
    AmbiguousDomainError,
    AuthorizationError,
    CMSException,
    InvalidOperationError,
    ResourceNotFoundError,
    TenantNotFoundError,
    ValidationError,
)


class TestCMSException:
    """Test base CMSException class"""

    def test_cms_exception_default(self):
        """Test CMSException with default values"""
        exc = CMSException("Test error")
        assert str(exc) == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.details == {}

    def test_cms_exception_with_details(self):
        exc = CMSException("Test error", status_code=status.HTTP_400_BAD_REQUEST, details={"key": "value"})
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.details == {"key": "value"}


class TestSubsiteExceptions:
    def test_ambiguous_domain_error(self):
        """Test AmbiguousDomainError lists every conflicting domain"""
        exc = AmbiguousDomainError("three.mysite.com", ["three.*", "*.mysite.com"])
        assert str(exc) == "Multiple subsites match on 'three.mysite.com': three.*,*.mysite.com"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.host == "three.mysite.com"
        assert exc.details == {"host": "three.mysite.com", "domains": ["three.*", "*.mysite.com"]}

    def test_tenant_not_found_error(self):
        exc = TenantNotFoundError(42)
        assert isinstance(exc, ResourceNotFoundError)
        assert str(exc) == "Subsite with id '42' not found"
        assert exc.status_code == status.HTTP_404_NOT_FOUND

    def test_tenant_not_found_without_id(self):
        assert str(TenantNotFoundError()) == "Subsite not found"

    def test_validation_error_field(self):
        exc = ValidationError("Domain must not be empty", field="domain")
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.details == {"field": "domain"}

    def test_invalid_operation_error(self):
        exc = InvalidOperationError("Nope", details={"page_id": 1})
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.details == {"page_id": 1}

    def test_authorization_error(self):
        """Test AuthorizationError records the missing permission"""
        exc = AuthorizationError(required_permission="ADMIN")
        assert exc.status_code == status.HTTP_403_FORBIDDEN
        assert exc.details == {"required_permission": "ADMIN"}


class TestErrorResponse:
    def test_error_body(self):
        response = create_error_response(500, "Boom", details={"host": "a"}, path="/x")
        assert response.status_code == 500
        assert response.body == (
            b'{"error":{"status_code":500,"message":"Boom","type":"Internal Server Error",'
            b'"details":{"host":"a"},"path":"/x"}}'
        )

    def test_error_type_fallback(self):
        assert get_error_type(404) == "Not Found"
        assert get_error_type(418) == "Error"
