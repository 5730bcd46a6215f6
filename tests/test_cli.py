# 命令行测试
import json

import pytest

from oncodata.cli import build_parser, main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "conf.yaml"
    path.write_text(
        "LOG_LEVEL: CRITICAL\n"
        "STORAGE:\n"
        "  backend: memory\n"
        "SCRAPER:\n"
        "  enabled_sources: [fda]\n",
        encoding="utf-8",
    )
    return str(path)


class TestCLI:
    """命令行测试"""
    
    def test_parser(self):
        args = build_parser().parse_args(["runs", "--limit", "5", "--source", "fda"])
        assert args.command == "runs"
        assert args.limit == 5
        assert args.source == "fda"
    
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
    
    def test_runs_on_empty_store(self, config_path, capsys):
        assert main(["--config", config_path, "runs"]) == 0
        assert json.loads(capsys.readouterr().out) == []
    
    def test_unknown_source(self, config_path):
        assert main(["--config", config_path, "run", "--source", "nmpa"]) == 2
