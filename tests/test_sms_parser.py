import pytest

from sms_recon.parsers.sms_parser import ParsedSignal, parse_sms


def test_amount_and_utr():
    signal = parse_sms("Rs.500.00 credited to A/c XX1234. UTR: 401234567890")

    assert signal.amount_minor == 50000
    assert signal.utr == "401234567890"
    assert signal.vpa is None
    assert signal.confidence == 90


def test_amount_utr_and_vpa():
    signal = parse_sms("Received Rs 1,250.50 from ramesh.k@okaxis UTR 312345678901")

    assert signal.amount_minor == 125050
    assert signal.utr == "312345678901"
    assert signal.vpa == "ramesh.k@okaxis"
    assert signal.confidence == 95


def test_amount_only():
    signal = parse_sms("rs 75 received")

    assert signal.amount_minor == 7500
    assert signal.utr is None
    assert signal.confidence == 60


def test_reference_only():
    signal = parse_sms("Payment done. TxnId:AB12CD34")

    assert signal.amount_minor is None
    assert signal.utr == "AB12CD34"
    assert signal.confidence == 30


@pytest.mark.parametrize("text", ["", "Hello there", "Your OTP is 123456"])
def test_nothing_recognisable(text):
    signal = parse_sms(text)

    assert signal == ParsedSignal()
    assert signal.confidence == 0


def test_indian_digit_grouping():
    assert parse_sms("Rs. 1,00,000.00 credited").amount_minor == 10000000


def test_case_insensitive_markers():
    signal = parse_sms("RS.99.99 credited utr:abc123")

    assert signal.amount_minor == 9999
    assert signal.utr == "abc123"


def test_first_amount_wins():
    assert parse_sms("Rs 100 debited, Rs 200 credited").amount_minor == 10000


def test_single_decimal_is_not_part_of_amount():
    # Only two-digit fractions are recognised
    assert parse_sms("Rs 10.5 received").amount_minor == 1000


def test_zero_amount_counts_as_missing():
    signal = parse_sms("Rs 0.00 credited")

    assert signal.amount_minor is None
    assert signal.confidence == 0


def test_bare_separator_is_not_an_amount():
    assert parse_sms("Rs , credited").amount_minor is None


def test_deterministic_and_sender_independent():
    text = "Rs 349.00 credited UTR 998877665544"

    assert parse_sms(text, "VM-HDFCBK") == parse_sms(text, "AD-ICICIB")
    assert parse_sms(text) == parse_sms(text)


def test_confidence_never_drops_when_a_field_is_added():
    bare = ParsedSignal()
    with_amount = ParsedSignal(amount_minor=100)
    with_utr = ParsedSignal(utr="X1")
    both = ParsedSignal(amount_minor=100, utr="X1")
    all_three = ParsedSignal(amount_minor=100, utr="X1", vpa="a@ybl")

    assert bare.confidence <= with_amount.confidence <= both.confidence <= all_three.confidence
    assert bare.confidence <= with_utr.confidence <= both.confidence


def test_to_dict_includes_derived_confidence():
    assert ParsedSignal(amount_minor=100, utr="X1").to_dict() == {
        "amount_minor": 100,
        "utr": "X1",
        "vpa": None,
        "confidence": 90,
    }
