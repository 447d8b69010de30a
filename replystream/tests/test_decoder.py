"""Tests for ChunkDecoder."""

from replystream.stream.decoder import ChunkDecoder


def test_feed_accumulates_ascii():
    d = ChunkDecoder()
    assert d.feed(b"Hel") == "Hel"
    assert d.feed(b"lo") == "Hello"
    assert d.text == "Hello"


def test_multibyte_split_across_chunks():
    raw = "héllo ✓ привет".encode("utf-8")
    # split inside the two-byte "é" and inside the three-byte check mark
    cuts = [2, 9, 10]
    parts = [raw[: cuts[0]], raw[cuts[0] : cuts[1]], raw[cuts[1] : cuts[2]], raw[cuts[2] :]]
    d = ChunkDecoder()
    for p in parts:
        d.feed(p)
    assert d.text == "héllo ✓ привет"
    assert "�" not in d.text


def test_decode_returns_only_new_text():
    d = ChunkDecoder()
    assert d.decode(b"\xc3") == ""
    assert d.decode(b"\xa9a") == "éa"


def test_invalid_bytes_replaced_not_raised():
    d = ChunkDecoder()
    assert d.feed(b"ok\xffok") == "ok�ok"


def test_flush_emits_dangling_bytes():
    d = ChunkDecoder()
    d.feed(b"a\xe2\x9c")
    assert d.text == "a"
    assert d.flush() == "�"
    assert d.text == "a�"


def test_flush_empty_when_nothing_pending():
    d = ChunkDecoder()
    d.feed(b"done")
    assert d.flush() == ""
