"""Tests for trusteeweb.gui_integration.bridge."""

import threading
from queue import Queue

import pytest

from trusteeweb.config import WebConfig
from trusteeweb.errors import SchemaError, ValidationError, WebBuildCancelled
from trusteeweb.gui_integration import bridge
from trusteeweb.gui_integration.bridge import load_table, run_web, run_web_worker
from trusteeweb.ingestion.sql_loader import SqlRelationshipTable, import_csv_files


class TestLoadTable:
    """Tests for load_table."""

    def test_csv(self, chain_csv, clean_env):
        table = load_table(WebConfig(), [chain_csv], log=lambda m: None)
        assert table.edge_count == 3

    def test_sql(self, tmp_path, chain_csv, clean_env):
        database = str(tmp_path / "perms.db")
        import_csv_files(database, [chain_csv])
        table = load_table(WebConfig(), sql_database=database, log=lambda m: None)
        try:
            assert isinstance(table, SqlRelationshipTable)
            assert table.edge_count == 3
        finally:
            table.close()

    def test_no_source(self, clean_env):
        with pytest.raises(ValueError, match="Must provide"):
            load_table(WebConfig(), log=lambda m: None)


class TestRunWeb:
    """Tests for the run_web pipeline."""

    def test_csv_pipeline(self, chain_csv, tmp_path, clean_env):
        messages = []
        result = run_web(
            seeds=["a@contoso.com"],
            input_files=[chain_csv],
            output_dir=str(tmp_path / "out"),
            config={"traversal": {"maximum_depth": 2}},
            progress_callback=messages.append,
            generate_visualizations=False,
            quiet=True,
        )

        assert [n.identity for n in result.nodes] == ["a@contoso.com", "b@contoso.com", "c@contoso.com"]
        assert result.metadata["source"] == "csv"
        assert result.metadata["input_files"] == ["chain.csv"]
        assert (tmp_path / "out" / "web_nodes.csv").exists()
        assert messages[-1] == "[+] Done!"

    def test_sql_pipeline_matches_csv(self, mixed_csv, tmp_path, clean_env):
        database = str(tmp_path / "perms.db")
        import_csv_files(database, [mixed_csv])
        kwargs = dict(seeds=["assistant@contoso.com"], generate_visualizations=False, quiet=True)

        from_csv = run_web(input_files=[mixed_csv], output_dir=str(tmp_path / "csv"), **kwargs)
        from_sql = run_web(sql_database=database, output_dir=str(tmp_path / "sql"), **kwargs)

        assert [n.to_dict() for n in from_sql.nodes] == [n.to_dict() for n in from_csv.nodes]
        assert from_sql.metadata["source"] == "sql"

    def test_thresholds_applied(self, mixed_csv, tmp_path, clean_env):
        result = run_web(
            seeds=["jane@contoso.com"],
            input_files=[mixed_csv],
            output_dir=str(tmp_path),
            config={"thresholds": {"permissive_mailbox_threshold": 2}},
            generate_visualizations=False,
            quiet=True,
        )
        assert result.exclusions.permissive_mailboxes == ["shared@contoso.com"]
        assert result.node_by_identity("shared@contoso.com") is None

    def test_clean_output(self, chain_csv, tmp_path, clean_env):
        out = tmp_path / "out"
        out.mkdir()
        stale = out / "stale.txt"
        stale.write_text("old")
        run_web(seeds=["a@contoso.com"], input_files=[chain_csv], output_dir=str(out),
                generate_visualizations=False, clean_output=True, quiet=True)
        assert not stale.exists()

    def test_failure_writes_no_reports(self, chain_csv, tmp_path, clean_env):
        out = tmp_path / "out"
        with pytest.raises(ValidationError):
            run_web(seeds=["bogus"], input_files=[chain_csv], output_dir=str(out), quiet=True)
        assert not (out / "web_nodes.csv").exists()

    def test_bad_seed_rejected_before_loading(self, tmp_path, clean_env):
        messages = []
        with pytest.raises(ValidationError):
            run_web(seeds=["ceo@"], input_files=[str(tmp_path / "missing.csv")],
                    output_dir=str(tmp_path / "out"), progress_callback=messages.append, quiet=True)
        assert messages == []

    def test_cancelled(self, chain_csv, tmp_path, clean_env):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(WebBuildCancelled):
            run_web(seeds=["a@contoso.com"], input_files=[chain_csv], output_dir=str(tmp_path),
                    cancel_event=cancel, quiet=True)

    def test_schema_error(self, tmp_path, clean_env):
        bad = tmp_path / "bad.csv"
        bad.write_text("Mailbox,User\na@contoso.com,b@contoso.com\n")
        with pytest.raises(SchemaError):
            run_web(seeds=["a@contoso.com"], input_files=[str(bad)], output_dir=str(tmp_path), quiet=True)

    def test_no_source(self, tmp_path, clean_env):
        with pytest.raises(ValueError):
            run_web(seeds=["a@contoso.com"], output_dir=str(tmp_path), quiet=True)


def drain(queue):
    messages = []
    while not queue.empty():
        messages.append(queue.get_nowait())
    return messages


class TestRunWebWorker:
    """Tests for the GUI worker wrapper."""

    def test_result_then_complete(self, chain_csv, tmp_path, clean_env):
        output_queue = Queue()
        run_web_worker(output_queue, {
            "seeds": ["a@contoso.com"],
            "input_files": [chain_csv],
            "output_dir": str(tmp_path / "out"),
            "generate_visualizations": False,
        })
        messages = drain(output_queue)
        kinds = [kind for kind, _ in messages]
        assert "log" in kinds
        assert kinds[-2:] == ["result", "complete"]
        assert messages[-2][1].summary.node_count == 4

    def test_unexpected_error_reported(self, tmp_path, monkeypatch):
        def fail(**kwargs):
            raise OSError("output directory is read-only")

        monkeypatch.setattr(bridge, "run_web", fail)
        upload_dir = tmp_path / "uploads"
        upload_dir.mkdir()
        (upload_dir / "perms.csv").write_text("MailboxIdentity\n")

        output_queue = Queue()
        run_web_worker(output_queue, {"seeds": ["a@contoso.com"]}, upload_dir=str(upload_dir))
        messages = drain(output_queue)

        assert ("error", "output directory is read-only") in messages
        assert messages[0] == ("log", "[!] Error: output directory is read-only")
        assert messages[-1] == ("complete", None)
        assert not upload_dir.exists()

    def test_validation_error_reported(self, tmp_path, clean_env):
        upload_dir = tmp_path / "uploads"
        upload_dir.mkdir()
        output_queue = Queue()
        run_web_worker(output_queue, {"seeds": ["bogus"], "input_files": [str(tmp_path / "x.csv")]},
                       upload_dir=str(upload_dir))
        messages = drain(output_queue)

        assert [kind for kind, _ in messages] == ["log", "error", "complete"]
        assert not upload_dir.exists()
