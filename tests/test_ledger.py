from steward.core.ledger import Ledger


def test_append_and_tail(tmp_path):
    ledger = Ledger(str(tmp_path / "nested" / "ledger.jsonl"))
    for i in range(5):
        ledger.record("tick", tick=i)
    tail = ledger.tail(2)
    assert [r["tick"] for r in tail] == [3, 4]
    assert all("ts" in r for r in tail)


def test_unreadable_lines_are_skipped(tmp_path):
    path = tmp_path / "ledger.jsonl"
    ledger = Ledger(str(path))
    ledger.record("exec", status="ok")
    with path.open("a", encoding="utf-8") as f:
        f.write("{broken\n\n")
    ledger.record("exec", status="failed")
    assert [r["status"] for r in ledger.read()] == ["ok", "failed"]


def test_missing_file_reads_empty(tmp_path):
    assert Ledger(str(tmp_path / "ledger.jsonl")).read() == []


def test_count_since(tmp_path):
    ledger = Ledger(str(tmp_path / "ledger.jsonl"))
    ledger.record("trust_violation")
    ledger.record("trust_violation")
    assert ledger.count("trust_violation") == 2
    ledger.record("trust_review")
    assert ledger.count("trust_violation", since_kind="trust_review") == 0
    assert ledger.count("trust_violation") == 2


def test_review_clears_open_trust_violations(tmp_path):
    ledger = Ledger(str(tmp_path / "ledger.jsonl"))
    ledger.record("trust_violation", action="sendMessage")
    ledger.record("trust_violation", action="autoReply")
    assert ledger.review_trust_violations(note="seen") == 2
    assert ledger.count("trust_violation", since_kind="trust_review") == 0
    last = ledger.tail(1)[0]
    assert last["kind"] == "trust_review"
    assert last["cleared"] == 2 and last["note"] == "seen"
    assert ledger.review_trust_violations() == 0
