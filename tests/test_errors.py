"""Tests for errors.py -- exception hierarchy and status code categorization."""

import pytest

from podcast_composer.errors import (
    AggregationStaleResult,
    ComposerError,
    ConfigError,
    ContextBuildError,
    FetchError,
    GenerationSubmitError,
    MissingNameError,
    MissingProfileError,
    NoContentSelectedError,
    categorize_status_code,
)
from podcast_composer.models import ErrorCategory


class TestExceptionHierarchy:
    def test_all_inherit_from_composer_error(self):
        for cls in (
            ConfigError,
            FetchError,
            AggregationStaleResult,
            ContextBuildError,
            NoContentSelectedError,
            MissingProfileError,
            MissingNameError,
            GenerationSubmitError,
        ):
            assert issubclass(cls, ComposerError)

    def test_composer_error_is_exception(self):
        assert issubclass(ComposerError, Exception)


class TestFetchError:
    def test_attributes(self):
        err = FetchError("notebook:a", "timeout")
        assert err.notebook_id == "notebook:a"
        assert err.reason == "timeout"
        assert "notebook:a" in str(err)


class TestContextBuildError:
    def test_attributes(self):
        err = ContextBuildError("notebook:b", "HTTP 500")
        assert err.notebook_id == "notebook:b"
        assert "notebook:b" in str(err)
        assert "check your selection" in str(err)


class TestMissingProfileError:
    def test_mentions_unknown_ref(self):
        assert "'nope'" in str(MissingProfileError("nope"))

    def test_without_ref(self):
        assert "episode profile" in str(MissingProfileError())


class TestGenerationSubmitError:
    def test_transient_has_retry_hint(self):
        err = GenerationSubmitError("server busy", status_code=503)
        assert err.status_code == 503
        assert err.category == ErrorCategory.TRANSIENT
        assert "try again" in str(err)

    def test_permanent_for_validation_errors(self):
        err = GenerationSubmitError("bad profile", status_code=422)
        assert err.category == ErrorCategory.PERMANENT
        assert "bad profile" in str(err)

    def test_transport_failure_is_transient(self):
        assert GenerationSubmitError("refused").category == ErrorCategory.TRANSIENT


class TestCategorizeStatusCode:
    @pytest.mark.parametrize("code", [None, 408, 429, 500, 502, 503])
    def test_transient_codes(self, code):
        assert categorize_status_code(code) == ErrorCategory.TRANSIENT

    @pytest.mark.parametrize("code", [400, 401, 404, 422])
    def test_permanent_codes(self, code):
        assert categorize_status_code(code) == ErrorCategory.PERMANENT
