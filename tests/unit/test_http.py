# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from aws_gateway_signers._http import (
    URI,
    Field,
    Fields,
    HTTPRequest,
    HTTPResponse,
    tuples_to_fields,
)


def test_field_single_valued() -> None:
    field = Field(name="fname", values=["fval"])
    assert field.name == "fname"
    assert field.as_string() == "fval"
    assert field.as_tuples() == [("fname", "fval")]


def test_field_multi_valued() -> None:
    field = Field(name="fname", values=["fval1", "fval2"])
    field.add("fval3")
    assert field.as_string() == "fval1, fval2, fval3"
    assert field.as_tuples() == [
        ("fname", "fval1"),
        ("fname", "fval2"),
        ("fname", "fval3"),
    ]


def test_field_empty() -> None:
    assert Field(name="fname").as_string() == ""


def test_fields_are_case_insensitive() -> None:
    fields = Fields([Field(name="Accept", values=["application/json"])])
    assert "accept" in fields
    assert fields["ACCEPT"].values == ["application/json"]
    assert len(fields) == 1


def test_fields_reject_duplicate_initial_names() -> None:
    with pytest.raises(ValueError):
        Fields([Field(name="a", values=["1"]), Field(name="A", values=["2"])])


def test_fields_set_field_replaces() -> None:
    fields = Fields([Field(name="Accept", values=["text/plain"])])
    fields.set_field(Field(name="accept", values=["application/json"]))
    assert [f.as_string() for f in fields] == ["application/json"]


def test_fields_setitem_requires_matching_name() -> None:
    with pytest.raises(ValueError):
        Fields()["a"] = Field(name="b")


def test_tuples_to_fields_merges_repeated_names() -> None:
    fields = tuples_to_fields([("Set-Cookie", "a=1"), ("set-cookie", "b=2"), ("X", "y")])
    assert fields["set-cookie"].values == ["a=1", "b=2"]
    assert fields["x"].values == ["y"]


@pytest.mark.parametrize(
    "uri, expected",
    [
        (URI(host="sts.amazonaws.com"), "https://sts.amazonaws.com"),
        (
            URI(scheme="http", host="169.254.169.254", port=80, path="/latest/api/token"),
            "http://169.254.169.254:80/latest/api/token",
        ),
        (
            URI(host="sts.amazonaws.com", path="/", query="Action=Assume&Version=1"),
            "https://sts.amazonaws.com/?Action=Assume&Version=1",
        ),
    ],
)
def test_uri_build(uri: URI, expected: str) -> None:
    assert uri.build() == expected


def test_uri_netloc() -> None:
    assert URI(host="localhost").netloc == "localhost"
    assert URI(host="localhost", port=8080).netloc == "localhost:8080"


def test_request_defaults() -> None:
    request = HTTPRequest(destination=URI(host="example.com"), method="GET")
    assert request.fields == Fields()


def test_response_text() -> None:
    response = HTTPResponse(status=200, body=b'{"a": "\xc3\xa9"}')
    assert response.text() == '{"a": "é"}'
    assert response.reason is None
