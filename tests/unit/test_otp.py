"""
Unit tests for passcode detection

Tests the keyword-anchored token rule, year filtering, the 6-digit
fallback and the scan window
"""
import pytest

from tempvortex.utils.otp import KeywordOtpExtractor, extract_otp, extract_otp_from_message, looks_like_year


@pytest.mark.unit
@pytest.mark.otp
class TestKeywordOtpExtractor:
    """Test suite for the default extraction strategy"""

    def test_token_after_keyword(self):
        """
        Given: A sentence with a keyword followed by an alphanumeric code
        When: extract_otp() is called
        Then: The code is returned
        """
        assert extract_otp("Your verification code is A1B2C9") == "A1B2C9"

    def test_year_is_not_a_code(self):
        """
        Given: Text whose only candidate is a calendar year
        When: extract_otp() is called
        Then: No code is found
        """
        assert extract_otp("Meeting scheduled for 2024") is None

    def test_year_after_keyword_is_skipped(self):
        """
        Given: A keyword followed by a year and then the real code
        When: extract_otp() is called
        Then: The year is skipped and the code returned
        """
        assert extract_otp("Your access code (valid in 2024): 7Q4KZ2") == "7Q4KZ2"

    def test_six_digit_fallback(self):
        """
        Given: No keyword, but a standalone 6-digit number
        When: extract_otp() is called
        Then: The number is returned
        """
        assert extract_otp("Use 482913 to continue") == "482913"

    def test_code_beyond_scan_window_ignored(self):
        """
        Given: A code that only appears after the first 2000 characters
        When: extract_otp() is called
        Then: No code is found
        """
        text = "x " * 1000 + "Your code is 482913"
        assert len(text) > 2000
        assert extract_otp(text) is None

    def test_keyword_is_case_insensitive(self):
        assert extract_otp("OTP: 9XK2") == "9XK2"

    def test_lowercase_words_are_not_codes(self):
        """
        Given: Only lowercase words follow the keyword
        When: extract_otp() is called
        Then: Nothing is returned
        """
        assert extract_otp("Please verify your email address now") is None

    def test_token_too_far_from_keyword(self):
        text = "Your code" + " " * 60 + "ABCD12"
        assert KeywordOtpExtractor().extract(text) is None

    def test_empty_text(self):
        assert extract_otp("") is None

    def test_custom_window(self):
        """
        Given: A narrower scan window
        When: The code sits past it
        Then: Nothing is returned
        """
        extractor = KeywordOtpExtractor(max_chars=10)
        assert extractor.extract("Hello there, your pin is 4821ZZ") is None

    def test_replaceable_strategy(self):
        class FixedExtractor:
            def extract(self, text):
                return "FIXED1"

        assert extract_otp("anything", FixedExtractor()) == "FIXED1"

    @pytest.mark.parametrize(
        "token,expected",
        [("1950", True), ("2049", True), ("1949", False), ("2050", False), ("20245", False), ("AB12", False)],
    )
    def test_looks_like_year(self, token, expected):
        assert looks_like_year(token) is expected


@pytest.mark.unit
@pytest.mark.otp
class TestExtractFromMessage:
    """Test suite for message-level extraction"""

    def test_unhydrated_message_has_no_code(self, make_message):
        assert extract_otp_from_message(make_message("m1")) is None

    def test_html_content_is_rendered_first(self, make_message):
        """
        Given: A hydrated message whose code is inside HTML markup
        When: extract_otp_from_message() is called
        Then: The code is found in the rendered text
        """
        message = make_message(
            "m1",
            html='<div style="color:#FFFFFF">Your login code is <b>K7P2QX</b></div>',
            body=None,
        )
        assert extract_otp_from_message(message) == "K7P2QX"

    def test_plain_body(self, make_message):
        message = make_message("m1", body="Your token: 55AA77")
        assert extract_otp_from_message(message) == "55AA77"

    def test_scan_window_bounds_raw_html(self, make_message):
        """
        Given: HTML whose markup alone exceeds the scan window
        When: extract_otp_from_message() is called
        Then: The code after the long attribute is not found
        """
        html = '<div style="' + "x" * 2500 + '">Your verification code is ZX9Q12</div>'
        message = make_message("m1", html=html, body=None)
        assert extract_otp_from_message(message) is None

    def test_scan_window_bounds_plain_body(self, make_message):
        message = make_message("m1", body="." * 2100 + " Your verification code is ZX9Q12")
        assert extract_otp_from_message(message) is None
