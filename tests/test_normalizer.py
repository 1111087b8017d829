from expiry_scan.barcodes.normalizer import (
    field_map,
    normalize,
    to_parenthesized,
    tokenize,
)

GS = "\x1d"


class TestToParenthesized:
    def test_fixed_and_variable_fields(self):
        code = "0105012345678900" + "17250228" + "1012345"
        assert to_parenthesized(code) == "(01)05012345678900(17)250228(10)12345"

    def test_variable_field_ends_at_group_separator(self):
        assert to_parenthesized(f"10ABC{GS}17250228") == "(10)ABC(17)250228"

    def test_variable_field_ends_at_pipe(self):
        assert to_parenthesized("21SN1|10LOT") == "(21)SN1(10)LOT"

    def test_variable_field_ends_at_next_ai(self):
        assert to_parenthesized("10AB17250228") == "(10)AB(17)250228"

    def test_variable_field_does_not_split_on_its_first_characters(self):
        # "17" right after the AI is data, not a new AI.
        assert to_parenthesized("1017ABC") == "(10)17ABC"

    def test_skips_leading_noise(self):
        assert to_parenthesized("XX0105012345678900") == "(01)05012345678900"

    def test_returns_input_when_nothing_recognised(self):
        assert to_parenthesized("abc") == "abc"
        assert to_parenthesized("") == ""

    def test_sscc_and_variant(self):
        assert to_parenthesized("00123456789012345678" + "2001") == "(00)123456789012345678(20)01"


class TestTokenize:
    def test_ordered_pairs(self):
        assert tokenize("(01)123(10)AB") == [("01", "123"), ("10", "AB")]

    def test_text_outside_markers_is_ignored(self):
        assert tokenize("junk(17)250228") == [("17", "250228")]

    def test_field_map_keeps_repeats(self):
        assert field_map("(10)A(10)B") == {"10": ["A", "B"]}


class TestNormalize:
    def test_plain_ean13(self):
        scan = normalize("5012345678900")
        assert scan.gtin14 == "05012345678900"
        assert scan.gtin13 == "5012345678900"
        assert scan.identified
        assert scan.done

    def test_short_internal_code(self):
        scan = normalize("12345")
        assert scan.gtin14 == "00000000012345"
        assert scan.gtin13 == "12345"
        assert scan.done

    def test_long_numeric_code_truncates_gtin13(self):
        scan = normalize("123456789012345678901")
        assert scan.gtin13 == "1234567890123"
        assert scan.gtin14 == "123456789012345678901"

    def test_headerless_gs1_stream_is_converted(self):
        scan = normalize("010501234567890017250228")
        assert scan.text == "(01)05012345678900(17)250228"
        assert not scan.done

    def test_raw_stream_with_group_separator(self):
        scan = normalize(f"0105012345678900" f"10LOT1{GS}17250228")
        assert scan.text == "(01)05012345678900(10)LOT1(17)250228"
        assert not scan.identified

    def test_aim_symbology_prefix_is_removed(self):
        scan = normalize("]d2010501234567890017250228")
        assert scan.text == "(01)05012345678900(17)250228"

    def test_parenthesized_input_is_kept(self):
        assert normalize(" (01)05012345678900 ").text == "(01)05012345678900"

    def test_empty_input(self):
        assert normalize("").text == ""
        assert normalize(None).text == ""
        assert not normalize(None).identified

    def test_four_digit_code_is_not_an_identifier(self):
        assert not normalize("1234").identified
