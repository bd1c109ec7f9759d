from click.testing import CliRunner

from stridesync.cli import cli


def test_version_command():
    runner = CliRunner()
    result = runner.invoke(cli, ["version"], prog_name="stridesync")
    assert result.exit_code == 0
    assert "stridesync" in result.stdout


def test_config_validate_ok(tmp_path):
    yml = tmp_path / "ok.yml"
    yml.write_text("gps:\n  mock_mode: true\nsync:\n  interval_secs: 60\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-validate", str(yml)], prog_name="stridesync")
    assert result.exit_code == 0
    assert "Config OK" in result.stdout
    assert "simulated" in result.stdout


def test_config_validate_failure(tmp_path):
    yml = tmp_path / "bad.yml"
    yml.write_text("tracking:\n  accuracy_threshold_m: -1\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-validate", str(yml)], prog_name="stridesync")
    assert result.exit_code == 1
    assert "Config validation failed" in result.stdout


def test_config_which_prefers_cli(tmp_path):
    yml = tmp_path / "mine.yml"
    yml.write_text("{}", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-which", "-c", str(yml)], prog_name="stridesync")
    assert result.exit_code == 0
    assert yml.name in result.stdout.replace("\n", "")


def test_config_which_all_lists_search_order(tmp_path):
    yml = tmp_path / "mine.yml"
    yml.write_text("{}", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["config-which", "--all", "-c", str(yml)],
        prog_name="stridesync",
        env={"STRIDESYNC_CONFIG": str(tmp_path / "absent.yml")},
    )
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0].startswith("* cli")
    assert "found" in lines[0]
    assert lines[1].split()[:2] == ["env", "missing"]
    assert [line.split()[0] for line in lines[2:]] == ["system", "repo"]
