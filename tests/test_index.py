import pytest

from kine.drivers.nats.index import (
    CompactedError,
    FutureRevisionError,
    KeyNotFoundError,
    Operation,
    RevisionIndex,
    SeqOp,
    get_seq_op,
    seek_key,
)


def prefix(key):
    return "/test" + key


@pytest.fixture
def populated():
    idx = RevisionIndex(10)
    order = ["/a/b/c", "/a", "/b", "/a/b", "/c", "/d/a", "/d/b"]
    for seq, key in enumerate(order, start=1):
        idx.apply(prefix(key), seq, Operation.PUT)
    return idx


def keys_of(matches):
    return [k for k, _ in matches]


def test_list_all(populated):
    matches = populated.list_ops(prefix("/"), "", 0)
    assert len(matches) == 7
    assert keys_of(matches) == sorted(keys_of(matches))


def test_list_with_prefix(populated):
    matches = populated.list_ops(prefix("/a"), prefix("/a"), 0)
    assert keys_of(matches) == [prefix("/a"), prefix("/a/b"), prefix("/a/b/c")]


def test_list_from_start_key(populated):
    matches = populated.list_ops(prefix("/"), prefix("/b"), 0)
    assert keys_of(matches) == [prefix("/b"), prefix("/c"), prefix("/d/a"), prefix("/d/b")]


def test_list_start_key_with_slash(populated):
    matches = populated.list_ops(prefix("/"), prefix("/c"), 0)
    assert keys_of(matches) == [prefix("/c"), prefix("/d/a"), prefix("/d/b")]


def test_list_up_to_revision(populated):
    matches = populated.list_ops(prefix("/"), "", 3)
    assert keys_of(matches) == [prefix("/a"), prefix("/a/b/c"), prefix("/b")]
    assert populated.count(prefix("/"), "", 3) == 3


def test_exact_key_without_trailing_slash(populated):
    matches = populated.list_ops(prefix("/a"), "", 0)
    assert keys_of(matches) == [prefix("/a")]


def test_deleted_keys_excluded_but_visible_in_history(populated):
    populated.apply(prefix("/c"), 8, Operation.DELETE)
    assert prefix("/c") not in keys_of(populated.list_ops(prefix("/"), "", 0))
    assert prefix("/c") in keys_of(populated.list_ops(prefix("/"), "", 7))
    assert populated.count(prefix("/"), "", 0) == 6


def test_future_revision(populated):
    with pytest.raises(FutureRevisionError):
        populated.list_ops(prefix("/"), "", 100)


def test_compacted_revision(populated):
    populated.set_compact_revision(5)
    assert populated.compact_revision == 5
    with pytest.raises(CompactedError):
        populated.check_revision("", 3)
    populated.check_revision("", 5)


def test_check_unknown_key(populated):
    with pytest.raises(KeyNotFoundError):
        populated.check_revision("/missing", 0)


def test_get_revision_op(populated):
    populated.apply(prefix("/a"), 8, Operation.PUT)
    assert populated.get_revision_op(prefix("/a"), 0, False).seq == 8
    assert populated.get_revision_op(prefix("/a"), 7, False).seq == 2
    with pytest.raises(KeyNotFoundError):
        populated.get_revision_op(prefix("/a"), 1, False)


def test_get_revision_op_deleted(populated):
    populated.apply(prefix("/b"), 8, Operation.DELETE)
    with pytest.raises(KeyNotFoundError):
        populated.get_revision_op(prefix("/b"), 0, False)
    assert populated.get_revision_op(prefix("/b"), 0, True).op is Operation.DELETE


def test_history_is_bounded():
    idx = RevisionIndex(2)
    for seq in (1, 2, 3):
        idx.apply("/k", seq, Operation.PUT)
    assert [op.seq for op in idx.snapshot()["/k"]] == [2, 3]
    with pytest.raises(KeyNotFoundError):
        idx.get_revision_op("/k", 1, True)
    assert idx.last_seq == 3


def test_invalid_history():
    with pytest.raises(ValueError):
        RevisionIndex(0)


def test_seek_key_cases():
    assert seek_key("/a/", "") == ("/a/", False)
    assert seek_key("/a", "") == ("/a", True)
    assert seek_key("/a/", "/a/b") == ("/a/b", False)
    assert seek_key("/a/", "/a/") == ("/a/", False)


def test_get_seq_op():
    ops = [SeqOp(1, Operation.PUT), SeqOp(3, Operation.DELETE)]
    assert get_seq_op(ops, 2, False) == ops[0]
    assert get_seq_op(ops, 0, False) is None
    assert get_seq_op(ops, 0, True) == ops[1]
    assert get_seq_op([], 0, True) is None


def test_empty_index_lists_nothing():
    idx = RevisionIndex(10)
    assert idx.list_ops("/", "", 0) == []
    assert idx.count("", "", 0) == 0