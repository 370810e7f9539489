"""
Tests for the catalog-index command line.
"""
import json

import pytest

from catalog_index import cli
from catalog_index.scraper.errors import TransportError


class TestParser:

    def test_commands(self):
        parser = cli.build_parser()
        for command in ("crawl", "build", "all"):
            assert parser.parse_args([command]).command == command

    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["publish"])

    def test_overrides(self):
        args = cli.build_parser().parse_args(["crawl", "--per-page", "10", "--max-depth", "3", "-v"])
        assert args.per_page == 10
        assert args.max_depth == 3
        assert args.verbose is True


class TestMain:

    def test_build(self, write_inputs):
        data_dir = write_inputs()
        assert cli.main(["build", "--data-dir", str(data_dir)]) == 0
        meta = json.loads((data_dir / "index-metadata.json").read_text(encoding="utf-8"))
        assert meta["itemCount"] == 4

    def test_build_missing_input_exits_1(self, write_inputs, caplog):
        data_dir = write_inputs(skip=("videos.json",))
        with pytest.raises(SystemExit) as exc:
            cli.main(["build", "--data-dir", str(data_dir)])
        assert exc.value.code == 1
        assert "Missing required file" in caplog.text
        assert "videos.json" in caplog.text
        assert not (data_dir / "index-items.json").exists()

    def test_build_undecodable_input_exits_1(self, write_inputs, caplog):
        data_dir = write_inputs()
        (data_dir / "videos.json").write_bytes(b'[{"id": "x", "title": "\xff\xfe"}]')
        with pytest.raises(SystemExit) as exc:
            cli.main(["build", "--data-dir", str(data_dir)])
        assert exc.value.code == 1
        assert "Malformed JSON in file" in caplog.text
        assert not (data_dir / "index-items.json").exists()

    def test_crawl_failure_exits_1(self, data_dir, monkeypatch):
        async def failing_crawl(cfg, http=None):
            raise TransportError("HTTP 500: boom", status_code=500)

        monkeypatch.setattr(cli, "run_crawl", failing_crawl)
        with pytest.raises(SystemExit) as exc:
            cli.main(["all", "--data-dir", str(data_dir)])
        assert exc.value.code == 1
        assert not (data_dir / "index-items.json").exists()

    def test_all_runs_crawl_then_build(self, write_inputs, monkeypatch):
        data_dir = write_inputs()
        calls = []

        async def fake_crawl(cfg, http=None):
            calls.append(("crawl", cfg.data_path))

        def fake_build(path):
            calls.append(("build", path))

        monkeypatch.setattr(cli, "run_crawl", fake_crawl)
        monkeypatch.setattr(cli, "run_build", fake_build)
        assert cli.main(["all", "--data-dir", str(data_dir)]) == 0
        assert calls == [("crawl", data_dir), ("build", data_dir)]

    def test_cli_flags_reach_config(self, data_dir, monkeypatch):
        seen = {}

        async def fake_crawl(cfg, http=None):
            seen["cfg"] = cfg

        monkeypatch.setattr(cli, "run_crawl", fake_crawl)
        cli.main(["crawl", "--data-dir", str(data_dir), "--root-parent-id", "4", "--per-page", "5"])
        assert seen["cfg"].root_parent_id == 4
        assert seen["cfg"].per_page == 5
