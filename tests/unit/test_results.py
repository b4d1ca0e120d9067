"""Unit tests for batch summaries."""
from lincli.models.upload import UploadResult
from lincli.upload.results import summarize


def result(name, success=True, stage=None):
    return UploadResult(
        filename=name,
        title=name.upper(),
        success=success,
        error=None if success else "boom",
        stage=stage
    )


def test_all_succeeded():
    summary = summarize([result("a.txt"), result("b.txt")])

    assert summary.succeeded == 2
    assert summary.failed == 0
    assert summary.failures == []
    assert summary.success is True
    assert summary.exit_code == 0


def test_partial_failure_exits_nonzero():
    summary = summarize([
        result("a.txt"),
        result("b.txt", success=False, stage="register_attachment"),
        result("c.txt"),
    ])

    assert (summary.succeeded, summary.failed, summary.total) == (2, 1, 3)
    assert [r.filename for r in summary.failures] == ["b.txt"]
    assert summary.exit_code == 1


def test_results_keep_order():
    names = ["z.txt", "a.txt", "m.txt"]
    summary = summarize(result(name, success=(name != "a.txt")) for name in names)

    assert [r.filename for r in summary.results] == names


def test_empty_batch_summary():
    summary = summarize([])

    assert summary.total == 0
    assert summary.exit_code == 0
