import pytest

from lodecore.recovery import InvalidTargetError
from lodecore.security import TargetValidationRules, TargetValidator, validate_target_url


@pytest.mark.unit
class TestTargetValidator:
    @pytest.mark.parametrize(
        "url",
        ["https://example.com", "http://news.example.org/path?q=1", "  https://example.com/x  "],
    )
    def test_accepts_public_http_urls(self, url):
        assert validate_target_url(url) == url.strip()

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "ftp://example.com/file",
            "file:///etc/passwd",
            "https://",
            "http://localhost:8080",
            "http://app.localhost",
            "http://127.0.0.1",
            "http://10.0.0.5/admin",
            "http://192.168.1.1",
            "http://169.254.169.254/latest/meta-data",
            "http://[::1]/",
            "https://example.com/" + "a" * 2100,
        ],
    )
    def test_rejects_disallowed_urls(self, url):
        with pytest.raises(InvalidTargetError):
            validate_target_url(url)

    def test_allowlist(self):
        validator = TargetValidator(TargetValidationRules(allowed_domains=["example.com"]))
        assert validator.validate_url("https://blog.example.com/a")
        with pytest.raises(InvalidTargetError):
            validator.validate_url("https://example.org")

    def test_private_ips_can_be_allowed(self):
        validator = TargetValidator(TargetValidationRules(allow_private_ips=True))
        assert validator.validate_url("http://127.0.0.1:8000/")

    def test_error_carries_url(self):
        with pytest.raises(InvalidTargetError) as exc_info:
            validate_target_url("http://localhost")
        assert exc_info.value.url == "http://localhost"
