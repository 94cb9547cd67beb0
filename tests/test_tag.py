# tests/test_tag.py
"""
Tests for tag derivation and the decimal text form of tags.
"""

import hashlib
import random
import string

import pytest

from cppcheckdata_mtag.tag import MAX_TAG, TagState, derive_tag, format_tag, parse_tag


def _random_context(rng):
    words = ["".join(rng.choice(string.ascii_lowercase) for _ in range(rng.randint(1, 12)))
             for _ in range(4)]
    return " ".join(words)


class TestDeriveTag:

    def test_deterministic(self):
        assert derive_tag("drv.c probe d alloc_dev()") == derive_tag("drv.c probe d alloc_dev()")

    def test_matches_truncated_md5(self):
        digest = hashlib.md5(b"extern jiffies").digest()
        expected = int.from_bytes(digest[:8], "little") & ((1 << 63) - 1)
        assert derive_tag("extern jiffies") == expected

    def test_sign_bit_clear(self):
        rng = random.Random(1234)
        for _ in range(2000):
            tag = derive_tag(_random_context(rng))
            assert 0 <= tag <= MAX_TAG
            assert tag < 2 ** 63

    def test_single_component_change(self):
        assert derive_tag("a b c d") != derive_tag("a b c e")

    def test_order_sensitive(self):
        assert derive_tag("a.c f x y") != derive_tag("a.c f y x")

    def test_distinct_over_many_samples(self):
        rng = random.Random(99)
        contexts = {_random_context(rng) for _ in range(5000)}
        tags = {derive_tag(c) for c in contexts}
        assert len(tags) == len(contexts)

    def test_non_ascii_context(self):
        assert derive_tag("drv.c probe d kmalloc(µ)") != derive_tag("drv.c probe d kmalloc(u)")


class TestTextForm:

    def test_format_is_decimal(self):
        assert format_tag(42) == "42"

    def test_parse_round_trip(self):
        tag = derive_tag("extern foo")
        assert parse_tag(format_tag(tag)) == tag

    def test_parse_strips_whitespace(self):
        assert parse_tag(" 17\n") == 17

    @pytest.mark.parametrize("text", ["", "-1", "0x10", "12a", "1.5", "١٢", "²"])
    def test_parse_rejects_non_decimal(self, text):
        with pytest.raises(ValueError):
            parse_tag(text)

    def test_parse_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            parse_tag(str(MAX_TAG + 1))

    def test_parse_accepts_max(self):
        assert parse_tag(str(MAX_TAG)) == MAX_TAG


class TestTagState:

    def test_from_tag_display(self):
        state = TagState.from_tag(123)
        assert state.tag == 123
        assert state.display == "123"
        assert str(state) == "123"

    def test_from_text_does_not_rehash(self):
        tag = derive_tag("extern foo")
        assert TagState.from_text(str(tag)) == TagState.from_tag(tag)

    def test_immutable(self):
        state = TagState.from_tag(1)
        with pytest.raises(AttributeError):
            state.tag = 2
