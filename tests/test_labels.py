from sign_ingest.common.labels import label_from_filename, normalize_label, normalize_text, split_sequence


def test_label_from_filename_strips_quality_prefix_and_version() -> None:
    assert label_from_filename("sign_HELLO_v2_720p.mp4") == "HELLO"


def test_label_from_filename_is_case_insensitive() -> None:
    assert label_from_filename("Sign_good-morning_V3_1080P.MOV") == "GOOD_MORNING"


def test_label_from_filename_collapses_separators() -> None:
    assert label_from_filename("thank--you__please.webm") == "THANK_YOU_PLEASE"


def test_label_from_filename_keeps_plain_names() -> None:
    assert label_from_filename("/videos/asl/hello.mp4") == "HELLO"


def test_normalize_label() -> None:
    assert normalize_label("thank you") == "THANK_YOU"
    assert normalize_label(" book ") == "BOOK"
    assert normalize_label("") is None
    assert normalize_label(None) is None


def test_normalize_text_fixes_mojibake_and_whitespace() -> None:
    assert normalize_text("CafÃ©  au\nlait ") == "Café au lait"


def test_split_sequence() -> None:
    assert split_sequence("A  SENTENCE HERE ") == ["A", "SENTENCE", "HERE"]
    assert split_sequence("") == []
    assert split_sequence(None) == []


def test_label_from_filename_never_returns_an_unnormalized_label() -> None:
    assert label_from_filename("sign_.mp4") == "SIGN"
    assert label_from_filename("_720p.mp4") == "720P"
    assert label_from_filename("-.mp4") is None
    assert label_from_filename("__.mov") is None
