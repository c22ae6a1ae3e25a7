"""Tests for the command-line interface."""

import pytest

from job_watch.errors import NotFoundError
from job_watch.main import parse_args, run_command


class TestParseArgs:
    def test_add(self):
        args = parse_args(["add", "https://x.com/careers"])
        assert args.command == "add"
        assert args.url == "https://x.com/careers"
        assert args.config == "config.yaml"

    def test_refresh_defaults_to_all(self):
        assert parse_args(["refresh"]).source is None
        assert parse_args(["refresh", "--source", "3"]).source == 3

    def test_jobs_filters(self):
        args = parse_args(["--config", "other.yaml", "jobs", "--source", "2", "--new"])
        assert (args.config, args.source, args.new) == ("other.yaml", 2, True)

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestRunCommand:
    def test_empty_listing(self, app_config, capsys):
        run_command(parse_args(["sources"]), app_config)
        run_command(parse_args(["jobs"]), app_config)
        out = capsys.readouterr().out
        assert "No sources tracked yet" in out
        assert "No jobs found." in out

    def test_refresh_all_with_no_sources(self, app_config, capsys):
        run_command(parse_args(["refresh"]), app_config)
        assert "No sources tracked yet." in capsys.readouterr().out

    def test_stats(self, app_config, capsys):
        run_command(parse_args(["stats"]), app_config)
        out = capsys.readouterr().out
        assert "Sources tracked: 0" in out
        assert "Last run" not in out

    def test_unknown_ids_raise(self, app_config):
        with pytest.raises(NotFoundError):
            run_command(parse_args(["delete", "5"]), app_config)
        with pytest.raises(NotFoundError):
            run_command(parse_args(["mark-seen", "5"]), app_config)
