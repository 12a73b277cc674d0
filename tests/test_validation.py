"""Tests for request validation."""

import pytest

from tunnel_provisioner.common.exceptions import RequestValidationError
from tunnel_provisioner.models import ProvisionDraft, ProvisionRequest
from tunnel_provisioner.validation import (
    build_request,
    document_root_exists,
    validate_draft,
)


def make_draft(**overrides):
    values = {
        "tunnel_name": "my-site",
        "config_name": "my-site",
        "hostname": "my-site.example.com",
        "port": 8888,
    }
    values.update(overrides)
    return ProvisionDraft(**values)


def fields(violations):
    return {v.field for v in violations}


class TestValidateDraft:
    """Test validate_draft function."""

    def test_valid_draft(self):
        assert validate_draft(make_draft()) == []

    def test_accepts_mapping(self):
        assert validate_draft(make_draft().model_dump()) == []

    @pytest.mark.parametrize("name", ["", "my site", "my\tsite", " my-site"])
    def test_invalid_tunnel_name(self, name):
        assert fields(validate_draft(make_draft(tunnel_name=name))) == {"tunnel_name"}

    @pytest.mark.parametrize("name", ["", "a/b", "a\\b", "c:site"])
    def test_invalid_config_name(self, name):
        assert fields(validate_draft(make_draft(config_name=name))) == {"config_name"}

    def test_config_name_may_contain_spaces(self):
        assert validate_draft(make_draft(config_name="my site")) == []

    @pytest.mark.parametrize("hostname", ["", "localhost", "my site.example.com"])
    def test_invalid_hostname(self, hostname):
        assert fields(validate_draft(make_draft(hostname=hostname))) == {"hostname"}

    @pytest.mark.parametrize("port", [0, 65536, "", "http", "80.5", "-1", " 8888 "])
    def test_invalid_port(self, port):
        assert fields(validate_draft(make_draft(port=port))) == {"port"}

    @pytest.mark.parametrize("port", [1, "80", 8888, 65535])
    def test_valid_port(self, port):
        assert validate_draft(make_draft(port=port)) == []

    def test_collects_every_violation(self):
        """All rules run; the caller gets every problem at once."""
        draft = make_draft(
            tunnel_name="my site",
            config_name="a/b",
            hostname="localhost",
            port="99999",
            update_vhost=True,
            document_root="",
        )
        violations = validate_draft(draft)

        assert fields(violations) == {
            "tunnel_name",
            "config_name",
            "hostname",
            "port",
            "document_root",
        }
        assert all(v.message for v in violations)

    def test_document_root_ignored_without_update_vhost(self, tmp_path):
        draft = make_draft(document_root=str(tmp_path / "missing"))
        assert validate_draft(draft) == []

    def test_document_root_required_for_update_vhost(self):
        violations = validate_draft(make_draft(update_vhost=True))
        assert fields(violations) == {"document_root"}

    def test_document_root_must_exist(self, tmp_path):
        draft = make_draft(update_vhost=True, document_root=str(tmp_path / "missing"))
        violations = validate_draft(draft)
        assert fields(violations) == {"document_root"}
        assert "does not exist" in violations[0].message

    def test_document_root_must_be_directory(self, tmp_path):
        file_path = tmp_path / "index.html"
        file_path.write_text("<h1>hi</h1>")
        draft = make_draft(update_vhost=True, document_root=str(file_path))
        assert fields(validate_draft(draft)) == {"document_root"}

    def test_document_root_must_be_quotable(self, tmp_path):
        root = tmp_path / 'we"ird'
        root.mkdir()
        draft = make_draft(update_vhost=True, document_root=str(root))
        violations = validate_draft(draft)
        assert fields(violations) == {"document_root"}
        assert "control characters" in violations[0].message

    def test_existing_document_root(self, document_root):
        draft = make_draft(update_vhost=True, document_root=str(document_root))
        assert validate_draft(draft) == []

    def test_badly_typed_mapping(self):
        violations = validate_draft({"tunnel_name": "x", "unexpected": 1})
        assert "unexpected" in fields(violations)


class TestBuildRequest:
    """Test build_request function."""

    def test_builds_request(self):
        request = build_request(make_draft(port="8888"))

        assert isinstance(request, ProvisionRequest)
        assert request.port == 8888
        assert request.document_root is None
        assert request.update_vhost is False

    def test_empty_document_root_becomes_none(self):
        assert build_request(make_draft(document_root="")).document_root is None

    def test_raises_with_violations(self):
        with pytest.raises(RequestValidationError) as exc_info:
            build_request(make_draft(hostname="localhost", port=0))

        assert fields(exc_info.value.violations) == {"hostname", "port"}
        assert "hostname" in str(exc_info.value)

    def test_wants_vhost(self, document_root):
        request = build_request(
            make_draft(update_vhost=True, document_root=str(document_root))
        )
        assert request.wants_vhost is True


class TestDocumentRootExists:
    def test_existing(self, document_root):
        assert document_root_exists(str(document_root)) is True

    def test_missing(self, tmp_path):
        assert document_root_exists(str(tmp_path / "missing")) is False
        assert document_root_exists(None) is False
        assert document_root_exists("") is False
