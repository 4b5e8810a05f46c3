"""Tests for the core data models."""

import io

import pytest

from oasmachine.models import Authenticated, Headers, HTTPMethod, HttpResult, ParameterLocation, Request


class TestHeaders:
    def test_case_insensitive(self):
        headers = Headers({"Content-Type": "application/json"})
        assert headers.get("content-type") == "application/json"
        assert "CONTENT-TYPE" in headers

    def test_multiple_values(self):
        headers = Headers()
        headers.add("Set-Cookie", "a=1")
        headers.add("set-cookie", "b=2")
        assert headers.get_all("SET-COOKIE") == ["a=1", "b=2"]
        assert headers.to_dict() == {"Set-Cookie": ["a=1", "b=2"]}
        assert headers.raw_values() == {"set-cookie": ["a=1", "b=2"]}

    def test_set_replaces(self):
        headers = Headers([("X-A", "1"), ("X-A", "2")])
        headers.set("x-a", "3")
        assert headers.get_all("X-A") == ["3"]

    def test_copy_is_independent(self):
        headers = Headers({"X-A": "1"})
        copied = headers.copy()
        copied.add("X-A", "2")
        assert headers.get_all("X-A") == ["1"]


class TestRequest:
    def test_method_and_url(self):
        request = Request("post", "/pets?limit=5&x=a%20b", {"Host": "example.com"})
        assert request.method is HTTPMethod.POST
        assert request.path == "/pets"
        assert request.query_string == "limit=5&x=a%20b"
        assert request.host == "example.com"

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            Request("FETCH", "/")

    @pytest.mark.parametrize(
        "headers, body, expected",
        [
            ({}, None, False),
            ({}, b"", False),
            ({}, b"{}", True),
            ({"Content-Length": "0"}, b"{}", False),
            ({"Content-Length": "2"}, None, True),
            ({"Transfer-Encoding": "chunked"}, io.BytesIO(b"{}"), True),
            ({}, io.BytesIO(b""), True),
        ],
    )
    def test_has_body(self, headers, body, expected):
        assert Request("POST", "/", headers, body).has_body() is expected


class TestAuthenticated:
    def test_from_dict(self):
        authenticated = Authenticated.from_value({"user": "alex", "roles": ["admin"], "token": "t"})
        assert authenticated.user == "alex"
        assert authenticated.roles == ["admin"]
        assert authenticated.extra == {"token": "t"}

    def test_falsy_values(self):
        assert Authenticated.from_value(None) is None
        assert Authenticated.from_value({}) is None

    def test_other_values_are_the_user(self):
        assert Authenticated.from_value("alex").user == "alex"

    def test_failed_type_is_falsy(self):
        assert not Authenticated(type="invalid")


class TestParameterLocation:
    def test_child(self):
        location = ParameterLocation(in_="request", name="body", doc_path="/x").child("/a").child("/0")
        assert location.to_dict() == {"in": "request", "name": "body", "docPath": "/x", "path": "/a/0"}


class TestHttpResult:
    def test_without_body(self):
        result = HttpResult(status=204)
        assert result.read_body() == b""
