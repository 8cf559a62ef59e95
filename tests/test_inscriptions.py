import pytest

from inscription_testbed.inscriptions import (
    INSCRIPTION_TYPES,
    ContentType,
    InscriptionForm,
    InscriptionReceipt,
    InscriptionRequest,
    UnknownContentTypeError,
    mime_type_for,
)


@pytest.mark.parametrize(
    "selector, expected",
    [
        (0, "text/plain;charset=utf-8"),
        (1, "application/json;charset=utf-8"),
        (ContentType.JSON, "application/json;charset=utf-8"),
        ("text", "text/plain;charset=utf-8"),
    ],
)
def test_mime_type_table(selector, expected) -> None:
    assert mime_type_for(selector) == expected


@pytest.mark.parametrize("selector", [2, -1, True, "xml"])
def test_unknown_content_types_are_rejected(selector) -> None:
    with pytest.raises(UnknownContentTypeError):
        mime_type_for(selector)


def test_form_defaults_and_mutations() -> None:
    form = InscriptionForm()
    assert form.content == "Hello World"
    assert form.selected_type is INSCRIPTION_TYPES[0]

    form.set_content_type("json")
    form.set_content('{"a":1}')
    form.set_recipient("  ")

    request = form.to_request()
    assert request == InscriptionRequest(content_type=1, content='{"a":1}', recipient=None)
    assert request.mime_type == "application/json;charset=utf-8"

    with pytest.raises(UnknownContentTypeError):
        form.set_content_type("image")
    assert form.content_type == 1


def test_receipt_from_signer_pair() -> None:
    receipt = InscriptionReceipt.from_signer_result(
        ["commit", "reveal"], mime_type="text/plain;charset=utf-8", content="héllo"
    )

    assert receipt.commit_txid == "commit"
    assert receipt.reveal_txid == "reveal"
    assert receipt.content_length == 6
    assert receipt.summary()["mime_type"] == "text/plain;charset=utf-8"
    assert list(receipt.summary()) == ["commit_txid", "reveal_txid", "mime_type", "content_length"]


@pytest.mark.parametrize("raw", [None, "txid", ["only-one"], ["", "reveal"]])
def test_receipt_rejects_malformed_results(raw) -> None:
    with pytest.raises(ValueError):
        InscriptionReceipt.from_signer_result(raw, mime_type="text/plain;charset=utf-8", content="x")
