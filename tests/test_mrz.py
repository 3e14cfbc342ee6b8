"""Tests for MRZ location and decoding."""

from datetime import date

import pytest

from kyc_ocr.extraction.mrz import (
    MRZDecoder,
    find_by_country_code,
    find_by_markers,
    find_by_sweep,
    find_dob_digits,
    format_name,
    locate_mrz_line,
    repair_fillers,
)

TODAY = date(2024, 3, 15)
FILLER = "<" * 30


@pytest.fixture
def decoder() -> MRZDecoder:
    return MRZDecoder(
        {"USA": "United States", "MYS": "Malaysia", "GBR": "United Kingdom"},
        today=TODAY,
    )


class TestLocateMRZLine:
    """Tests for the three candidate-line searches."""

    def test_markers_pick_longest(self) -> None:
        lines = ["P<USADOE<<JOHN" + FILLER, "P<USADOE<<J" + "<" * 12, "Passport"]
        assert find_by_markers(lines) == lines[0]

    def test_markers_ignore_short_lines(self) -> None:
        assert find_by_markers(["P<USADOE<<JOHN"]) is None

    def test_country_code_after_misread_separator(self) -> None:
        lines = ["Surname", "pkusa doe john", "PKUSADOE JOHN"]
        assert find_by_country_code(lines) == "PKUSADOE JOHN"

    def test_sweep_normalizes_misreads(self) -> None:
        text = "noise PLGBRSMITH<<ANNA<<<< more noise"
        assert find_by_sweep(text) == "P<GBRSMITH<<ANNA<<<<"

    def test_locate_returns_none_without_mrz(self) -> None:
        assert locate_mrz_line("DRIVER LICENSE\nName: Jane Smith") is None


class TestNameDecoding:
    """Tests for filler repair and name formatting."""

    def test_simple_name(self) -> None:
        assert format_name("JOHN<<DOE" + FILLER, "USA") == "JOHN DOE"

    def test_filler_runs_misread_as_letters(self) -> None:
        assert repair_fillers("DOE<<JOHN<KKKKKKKK") == "DOE<<JOHN"
        assert repair_fillers("DOE<L<JOHN") == "DOE<<<JOHN"

    def test_names_with_filler_letters_survive(self) -> None:
        assert format_name("KLEIN<<CLARA" + FILLER, "DEU") == "KLEIN CLARA"

    def test_separator_pair_misread_with_padding(self) -> None:
        assert repair_fillers("DOEKKJOHN" + "K" * 26) == "DOE<<JOHN"
        assert repair_fillers("SMITHLLANNA" + "L" * 20) == "SMITH<<ANNA"

    def test_separator_pair_needs_misread_padding(self) -> None:
        assert repair_fillers("DOEKKJOHN" + FILLER) == "DOEKKJOHN"
        assert repair_fillers("DOEKKJOHN" + "L" * 20) == "DOEKKJOHN"

    def test_double_letter_kept_when_separator_present(self) -> None:
        assert repair_fillers("WILLIAMS<<JOHN" + "L" * 20) == "WILLIAMS<<JOHN"

    def test_digits_dropped_from_name(self) -> None:
        assert format_name("DOE<<JOHN<<<<1234", "USA") == "DOE JOHN"

    def test_malaysian_bin(self) -> None:
        assert format_name("AHMAD<BIN<ALI" + FILLER, "MYS") == "AHMAD BIN ALI"

    def test_malaysian_short_markers_expanded(self) -> None:
        assert format_name("AHMAD<B<ALI" + FILLER, "MYS") == "AHMAD BIN ALI"
        assert format_name("SITI<BT<AMINAH" + FILLER, "MYS") == "SITI BINTI AMINAH"

    def test_markers_not_expanded_for_other_countries(self) -> None:
        assert format_name("AHMAD<B<ALI" + FILLER, "GBR") == "AHMAD B ALI"


class TestDobDigits:
    """Tests for date-of-birth digit recovery."""

    def test_plain_digits(self) -> None:
        assert find_dob_digits("P<USADOE<<JOHN<<850315") == "850315"

    def test_confused_digits(self) -> None:
        assert find_dob_digits("P<USADOE<<JOHN<<B5O3l5") is None
        assert find_dob_digits("P<USADOE<<JOHN<<85O3l5") is None
        assert find_dob_digits("P<USADOE<<JOHN<<8S03l5") == "850315"


class TestMRZDecoder:
    """Tests for full MRZ decoding."""

    def test_us_passport_name_line(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("P<USAJOHN<<DOE" + FILLER)
        assert result is not None
        assert result.full_name == "JOHN DOE"
        assert result.nationality == "United States"
        assert result.country_code == "USA"
        assert result.date_of_birth is None

    def test_two_line_mrz(self, decoder: MRZDecoder, passport_text: str) -> None:
        result = decoder.decode(passport_text)
        assert result.full_name == "DOE JOHN"
        assert result.date_of_birth == "1985-03-15"
        assert result.birth_year == 1985
        assert result.age == 39
        assert result.document_number == "123456789"
        assert result.expiry_date == "2030-01-01"

    def test_malaysian_passport(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("P<MYSAHMAD<B<ALI" + FILLER)
        assert result.full_name == "AHMAD BIN ALI"
        assert result.nationality == "Malaysia"

    def test_misread_header(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("PKUSAJOHN<<DOE" + FILLER)
        assert result.country_code == "USA"
        assert result.full_name == "JOHN DOE"

    def test_misread_separator_and_padding(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("P<USADOEKKJOHN" + "K" * 25)
        assert result.full_name == "DOE JOHN"

    def test_unknown_country_passes_through(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("P<XYZJOHN<<DOE" + FILLER)
        assert result.nationality == "XYZ"

    def test_invalid_calendar_date_falls_back_to_year(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("P<USAJOHN<<DOE<<<<<<<<<<<<<<<<<851345")
        assert result.date_of_birth == "1985-01-01"
        assert result.approximate_dob is True
        assert result.age == 39

    def test_century_never_in_future(self, decoder: MRZDecoder) -> None:
        result = decoder.decode("P<USAJOHN<<DOE<<<<<<<<<<<<<<<<<300101")
        assert result.birth_year == 1930

    def test_no_mrz(self, decoder: MRZDecoder) -> None:
        assert decoder.decode("Name: Jane Smith") is None
