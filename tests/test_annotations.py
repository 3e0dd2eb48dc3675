import builtins
import errno
import os

import pytest

from conftest import write_json, write_text
from sign_ingest.annotations import loader as loader_module
from sign_ingest.annotations.loader import (
    AnnotationTables,
    detect_delimiter,
    load_annotations,
    load_sentence_annotations,
    parse_hamnosys,
    parse_sentence_rows,
    parse_wlasl,
    read_delimited_rows,
    sentence_source,
)
from sign_ingest.config import DEFAULT_SUBDATASETS
from sign_ingest.errors import AnnotationParseError
from sign_ingest.models import Annotation


def test_parse_wlasl_keys_instances_by_video_id() -> None:
    data = [
        {"gloss": "hello", "action_class": "greeting", "instances": [
            {"video_id": "v1", "split": "train", "bbox": [0, 0, 10, 20]},
            {"video_id": "v2"},
            {"frame_start": 1},
        ]},
        {"gloss": "thank you", "instances": [{"video_id": "v3"}]},
    ]
    table = parse_wlasl(data)

    assert sorted(table) == ["v1", "v2", "v3"]
    assert table["v1"].label == "HELLO"
    assert table["v1"].category == "greeting"
    assert table["v1"].split == "train"
    assert table["v1"].bbox == (0.0, 0.0, 10.0, 20.0)
    assert table["v1"].dialect == "ASL"
    assert table["v1"].source == "wlasl"
    assert table["v3"].label == "THANK_YOU"
    assert table["v3"].category == "general"


def test_parse_wlasl_duplicate_clip_id_last_write_wins() -> None:
    data = [
        {"gloss": "first", "instances": [{"video_id": "dup"}]},
        {"gloss": "second", "instances": [{"video_id": "dup"}]},
    ]
    assert parse_wlasl(data)["dup"].label == "SECOND"


def test_parse_wlasl_rejects_non_list() -> None:
    with pytest.raises(AnnotationParseError):
        parse_wlasl({"gloss": "hello"})


def test_parse_hamnosys_list_and_object_forms() -> None:
    listed = parse_hamnosys([
        {"video_id": "h1", "gloss": "house", "hamnosys": ""},
        {"id": "h2", "sign": "tree", "hamnosys": ""},
        {"gloss": "no id"},
    ])
    assert sorted(listed) == ["h1", "h2"]
    assert listed["h1"].label == "HOUSE"
    assert listed["h2"].label == "TREE"
    assert listed["h2"].notation == ""
    assert listed["h2"].dialect == "ISL"

    keyed = parse_hamnosys({"h3": {"sign": "water", "hamnosys": "x"}})
    assert keyed["h3"].label == "WATER"
    assert keyed["h3"].source == "hamnosys"


def test_detect_delimiter_and_sentence_source() -> None:
    assert detect_delimiter("a|b|c") == "|"
    assert detect_delimiter("a,b,c") == ","
    assert sentence_source("text/how2sign_train.csv") == "how2sign"
    assert sentence_source("text/PHOENIX-2014-T.train.corpus.csv") == "phoenix"


def test_phoenix_pipe_row(tmp_path) -> None:
    path = write_text(
        os.path.join(tmp_path, "PHOENIX-2014-T.test.corpus.csv"),
        "name|video|annotation\n7|v42|A SENTENCE HERE\n",
    )
    tables = load_sentence_annotations([path])

    annotation = tables["phoenix"]["v42"]
    assert list(annotation.label_sequence) == ["A", "SENTENCE", "HERE"]
    assert annotation.sentence == "A SENTENCE HERE"
    assert annotation.dialect == "GSL"
    assert annotation.label is None
    assert tables["how2sign"] == {}


def test_how2sign_two_and_three_column_rows(tmp_path) -> None:
    path = write_text(
        os.path.join(tmp_path, "how2sign_val.csv"),
        "video_id,sentence,gloss\n"
        "h1,Hello there,HELLO THERE\n"
        "h2,Just a sentence\n"
        "\n",
    )
    table = load_sentence_annotations([path])["how2sign"]

    assert table["h1"].sentence == "Hello there"
    assert table["h1"].label_sequence == ("HELLO", "THERE")
    assert table["h2"].sentence == "Just a sentence"
    assert table["h2"].label_sequence is None
    assert table["h2"].dialect == "ASL"


def test_header_line_is_always_skipped(tmp_path) -> None:
    path = write_text(os.path.join(tmp_path, "how2sign_train.csv"), "h0,header looks like data\n")
    assert read_delimited_rows(path) == []


def test_parse_sentence_rows_ignores_short_rows() -> None:
    table = parse_sentence_rows([["1", "v1"], ["2", "v2", "GOOD MORNING"]], "phoenix")
    assert list(table) == ["v2"]


def test_unparseable_file_empties_only_its_source(tmp_path) -> None:
    good = write_text(os.path.join(tmp_path, "how2sign_test.csv"), "id,sentence\nh1,Hi\n")
    bad = os.path.join(tmp_path, "PHOENIX-2014-T.train.corpus.csv")
    with open(bad, "wb") as f:
        f.write(b"name|video|annotation\n1|p1|\xff\xfe\xfa broken\n")
    also_phoenix = write_text(os.path.join(tmp_path, "PHOENIX-2014-T.test.corpus.csv"),
                              "name|video|annotation\n2|p2|HALLO\n")

    tables = load_sentence_annotations([good, bad, also_phoenix])

    assert list(tables["how2sign"]) == ["h1"]
    assert tables["phoenix"] == {}


def test_missing_sentence_files_are_skipped(tmp_path) -> None:
    tables = load_sentence_annotations([os.path.join(tmp_path, "how2sign_train.csv")])
    assert tables == {"how2sign": {}, "phoenix": {}}


def test_find_uses_fixed_priority_order() -> None:
    def ann(source, label=None):
        return Annotation(clip_id="c1", source=source, dialect="ASL", label=label)

    tables = AnnotationTables({
        "hamnosys": {"c1": ann("hamnosys", "NOTATION")},
        "phoenix": {"c1": ann("phoenix"), "c2": ann("phoenix")},
        "how2sign": {"c1": ann("how2sign")},
        "wlasl": {"c1": ann("wlasl", "WORD")},
    })
    assert tables.find("c1").source == "wlasl"
    assert tables.find("c2").source == "phoenix"
    assert tables.find("missing") is None

    without_word = AnnotationTables({
        "hamnosys": {"c1": ann("hamnosys")},
        "phoenix": {"c1": ann("phoenix")},
        "how2sign": {"c1": ann("how2sign")},
    })
    assert without_word.find("c1").source == "how2sign"


def _write_dataset(root: str) -> None:
    write_json(os.path.join(root, "word2motion", "text", "WLASL_v0.3.json"),
               [{"gloss": "hello", "instances": [{"video_id": "v1"}]}])
    write_text(os.path.join(root, "language2motion", "text", "how2sign_train.csv"),
               "id,sentence\nh1,Good morning\n")
    write_text(os.path.join(root, "language2motion", "text", "PHOENIX-2014-T.train.corpus.csv"),
               "name|video|annotation\n1|p1|MORGEN WETTER\n")
    write_json(os.path.join(root, "hamnosys2motion", "data.json"),
               {"n1": {"gloss": "house", "hamnosys": "x"}})


def test_load_annotations_all_sources(tmp_path) -> None:
    root = str(tmp_path)
    _write_dataset(root)

    tables = load_annotations(root, DEFAULT_SUBDATASETS)

    assert tables.total() == 4
    assert tables.find("v1").label == "HELLO"
    assert tables.find("h1").sentence == "Good morning"
    assert tables.find("p1").label_sequence == ("MORGEN", "WETTER")
    assert tables.find("n1").label == "HOUSE"


def test_load_annotations_tolerates_missing_and_malformed_sources(tmp_path) -> None:
    root = str(tmp_path)
    _write_dataset(root)
    write_text(os.path.join(root, "word2motion", "text", "WLASL_v0.3.json"), "{not json")
    os.remove(os.path.join(root, "hamnosys2motion", "data.json"))

    tables = load_annotations(root, DEFAULT_SUBDATASETS)

    assert tables["wlasl"] == {}
    assert tables["hamnosys"] == {}
    assert tables.find("h1") is not None
    assert tables.find("p1") is not None


def test_load_annotations_missing_dataset_root(tmp_path) -> None:
    tables = load_annotations(os.path.join(tmp_path, "absent"), DEFAULT_SUBDATASETS)
    assert tables.total() == 0


def test_unreadable_files_become_empty_tables(tmp_path, monkeypatch) -> None:
    root = str(tmp_path)
    _write_dataset(root)
    unreadable = ("WLASL_v0.3.json", "how2sign_train.csv")

    def failing_open(path, *args, **kwargs):
        if os.path.basename(path) in unreadable:
            raise OSError(errno.EIO, "Input/output error", path)
        return builtins.open(path, *args, **kwargs)

    monkeypatch.setattr(loader_module, "open", failing_open, raising=False)

    tables = load_annotations(root, DEFAULT_SUBDATASETS)

    assert tables["wlasl"] == {}
    assert tables["how2sign"] == {}
    assert tables.find("p1") is not None
    assert tables.find("n1").label == "HOUSE"
