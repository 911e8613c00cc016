"""Tests for registry-backed exceptions."""

import pytest

from projectx_backend.exceptions import (
    BadRequestException,
    ChatAccessDeniedException,
    NotFoundException,
    ProjectXException,
    RateLimitException,
    ServiceUnavailableException,
    TokenExpiredException,
    UnauthorizedException,
    get_all_error_codes,
    get_error_definition,
)


@pytest.mark.unit
class TestErrorRegistry:

    def test_every_exception_has_a_registry_entry(self):
        """Test that no exception class falls back to the unknown-code definition."""
        codes = set(get_all_error_codes())
        classes = [ProjectXException, *ProjectXException.__subclasses__()]

        assert {cls.default_code for cls in classes} <= codes

    def test_unknown_code(self):
        definition = get_error_definition("NOPE_123")

        assert definition.http_status == 500
        assert "NOPE_123" in definition.message.plain


@pytest.mark.unit
class TestProjectXException:

    @pytest.mark.parametrize("exc_class,status_code", [
        (UnauthorizedException, 401),
        (TokenExpiredException, 401),
        (ChatAccessDeniedException, 403),
        (BadRequestException, 400),
        (NotFoundException, 404),
        (RateLimitException, 429),
        (ServiceUnavailableException, 503),
    ])
    def test_status_from_registry(self, exc_class, status_code):
        assert exc_class().status_code == status_code

    def test_detail_overrides_registry_message(self):
        response = ChatAccessDeniedException(detail="User is not in the chat room").to_error_response()

        assert response.error_code == "PERM_002"
        assert response.message == "User is not in the chat room"

    def test_registry_message_without_detail(self):
        response = TokenExpiredException().to_error_response()

        assert response.message == get_error_definition("AUTH_002").message.plain

    def test_retry_after(self):
        assert RateLimitException().to_error_response().retry_after == 60

    def test_debug_info_names_raising_function(self):
        def lookup_room():
            raise NotFoundException(detail="Chat room 9 not found", user_id=3)

        with pytest.raises(NotFoundException) as exc_info:
            lookup_room()

        debug = exc_info.value.to_error_response(include_debug=True).debug
        assert debug.user_id == 3
        assert debug.raised_in.startswith("lookup_room")
