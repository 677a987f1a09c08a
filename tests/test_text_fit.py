import pytest

from famous_since.store.text_fit import DEFAULT_FONT_SIZE, MIN_FONT_SIZE, MAX_LINE_WIDTH, FitResult, fit_text


def half_em(text, size):
    """Every character is half the font size wide."""
    return len(text) * size * 0.5


class TestFitText:
    def test_empty_text_keeps_default_size(self):
        assert fit_text("", measure=half_em) == FitResult(DEFAULT_FONT_SIZE, False, "")

    def test_short_text_fits_at_default_size(self):
        assert fit_text("ROCK", measure=half_em) == FitResult(DEFAULT_FONT_SIZE, False, "ROCK")

    def test_shrinks_one_pixel_at_a_time_until_it_fits(self):
        text = "ABCDEFGHIJ KLMNOPQRS"  # 20 chars: 10px per point
        result = fit_text(text, measure=half_em)
        assert result.font_size == 17
        assert not result.wrapped
        assert result.text == text

    def test_wraps_greedily_at_minimum_size(self):
        result = fit_text("BEST DAD IN THE WHOLE WIDE WORLD", measure=half_em)
        assert result.font_size == MIN_FONT_SIZE
        assert result.wrapped
        assert result.text == "BEST DAD IN THE WHOLE WIDE\nWORLD"

    def test_single_long_word_is_not_wrapped(self):
        word = "A" * 40
        assert fit_text(word, measure=half_em) == FitResult(MIN_FONT_SIZE, False, word)

    def test_wrap_is_dropped_when_second_line_still_overflows(self):
        text = "A" * 20 + " " + "B" * 34
        assert fit_text(text, measure=half_em) == FitResult(MIN_FONT_SIZE, False, text)

    def test_overlong_first_word_stays_on_line_one(self):
        text = "A" * 30 + " SHORT"
        result = fit_text(text, measure=half_em)
        assert not result.wrapped

    @pytest.mark.parametrize("width", [MAX_LINE_WIDTH, 300])
    def test_never_below_minimum(self, width):
        result = fit_text("X" * 200, max_width=width, measure=half_em)
        assert result.font_size >= MIN_FONT_SIZE

    def test_to_dict_uses_client_keys(self):
        assert FitResult(14, True, "A\nB").to_dict() == {"fontSize": 14, "shouldWrap": True, "text": "A\nB"}
