from unittest.mock import patch

from reconforge.cli import main


def test_no_command_prints_help(recon_config, capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_probe_unreadable_suffix_file(recon_config, tmp_path, capsys):
    code = main(["probe", "https://example.test", "--suffixes", str(tmp_path / "missing.txt"), "--no-serve"])

    assert code == 2
    assert "Failed to read" in capsys.readouterr().err


def test_probe_empty_suffix_file(recon_config, tmp_path, capsys):
    suffixes = tmp_path / "try.txt"
    suffixes.write_text("# nothing yet\n\n")

    assert main(["probe", "https://example.test", "--suffixes", str(suffixes), "--no-serve"]) == 0
    assert "Nothing to check" in capsys.readouterr().out


def test_probe_runs_pool(recon_config, tmp_path):
    suffixes = tmp_path / "try.txt"
    suffixes.write_text("admin\nlogin\n")
    output = tmp_path / "route-results.jsonl"

    async def fake_run_probe(base_url, items, **kwargs):
        assert base_url == "https://example.test"
        assert items == ["admin", "login"]
        assert kwargs["port"] is None
        assert kwargs["output"] == output
        return []

    with patch("reconforge.probe.server.run_probe", side_effect=fake_run_probe):
        code = main([
            "probe", "https://example.test",
            "--suffixes", str(suffixes),
            "--output", str(output),
            "--no-serve",
        ])

    assert code == 0
