# tests/test_main.py

import io
import json
import tempfile
from unittest.mock import MagicMock, patch

import pytest

from app import main as cli
from rback.errors import AssemblyError, ResolutionError, RetrievalError


@pytest.fixture
def snapshot(tmp_path, cluster_items):
    path = tmp_path / "rbac.json"
    path.write_text(json.dumps({"kind": "List", "items": cluster_items}), encoding="utf-8")
    return str(path)


# -------------------------------------------------------------
# ARGUMENTS
# -------------------------------------------------------------
def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.kind is None
    assert args.names == []
    assert args.namespaces == ""
    assert args.show_legend is True
    assert args.render_rules is True
    assert args.format == "dot"
    assert args.output is None


def test_parser_kind_names_and_flags():
    args = cli.build_parser().parse_args(
        ["sa", "deployer", "builder", "-n", "ci", "--no-show-legend", "--no-render-rules", "--format", "json"])
    assert args.kind == "sa"
    assert args.names == ["deployer", "builder"]
    assert args.namespaces == "ci"
    assert args.show_legend is False
    assert args.render_rules is False
    assert args.format == "json"


def test_unknown_kind_is_usage_error(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["pods"])
    assert exc.value.code == 2
    assert "unsupported resource kind" in capsys.readouterr().err


# -------------------------------------------------------------
# END TO END (snapshot source)
# -------------------------------------------------------------
def test_dot_to_stdout(snapshot, capsys):
    assert cli.main(["--snapshot", snapshot]) == 0
    out = capsys.readouterr().out
    assert out.startswith("digraph")
    assert '"ServiceAccount-ci/deployer" -> "crb-cluster-viewers" [dir=back]' in out
    assert "system:node" not in out


def test_json_to_file(snapshot, tmp_path):
    out_path = tmp_path / "graph.json"
    code = cli.main(["cr", "view", "--snapshot", snapshot, "--no-show-legend", "--format", "json", "-o", str(out_path)])
    assert code == 0
    data = json.loads(out_path.read_text(encoding="utf-8"))
    ids = {n["id"] for n in data["nodes"]}
    assert {"cr-/view", "cr-ci/view", "crb-cluster-viewers", "rb-ci/ci-view"} <= ids
    assert "rb-prod/app-edit" not in ids


def test_ignore_prefixes_none(snapshot, capsys):
    assert cli.main(["--snapshot", snapshot, "--ignore-prefixes", "none", "--format", "json"]) == 0
    ids = {n["id"] for n in json.loads(capsys.readouterr().out)["nodes"]}
    assert "crb-system:node" in ids


def test_missing_name_in_snapshot_exits_with_retrieval_code(snapshot, capsys):
    assert cli.main(["sa", "ghost", "-n", "ci", "--snapshot", snapshot]) == RetrievalError.exit_code
    assert "ghost not found" in capsys.readouterr().err


# -------------------------------------------------------------
# ERROR CODES
# -------------------------------------------------------------
@pytest.mark.parametrize("error", [RetrievalError, ResolutionError, AssemblyError])
def test_error_exit_codes(error, capsys):
    with patch("app.main.make_client", return_value=MagicMock()), \
         patch("app.main.fetch_permissions", side_effect=error("boom")):
        assert cli.main([]) == error.exit_code
    assert "rback: boom" in capsys.readouterr().err


def test_exit_codes_are_distinct():
    assert len({RetrievalError.exit_code, ResolutionError.exit_code, AssemblyError.exit_code}) == 3


def test_live_cluster_client_uses_kubeconfig():
    with patch("app.main.KubeClient") as mock_client:
        args = cli.build_parser().parse_args(["--kubeconfig", "/tmp/kc", "--context", "dev"])
        cli.make_client(args)
    mock_client.assert_called_once_with(kubeconfig="/tmp/kc", context="dev")


# -------------------------------------------------------------
# OUTPUT
# -------------------------------------------------------------
def test_write_output_dot_stream():
    G = MagicMock()
    stream = io.StringIO()
    with patch("app.main.to_dot", return_value="digraph {}\n"):
        assert cli.write_output(G, "dot", stream=stream) is None
    assert stream.getvalue() == "digraph {}\n"


def test_write_output_html_file():
    with patch("app.main.render_html") as mock_render:
        assert cli.write_output(MagicMock(), "html", "/tmp/out.html") == "/tmp/out.html"
    mock_render.assert_called_once()


def test_write_output_unwritable_path(tmp_path):
    bad = tmp_path / "missing-dir" / "out.dot"
    with patch("app.main.to_dot", return_value="digraph {}\n"):
        with pytest.raises(cli.RbackError, match="Can't write"):
            cli.write_output(MagicMock(), "dot", str(bad))


def test_html_to_stdout_leaves_no_temp_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))

    def fake_render(G, path):
        with open(path, "w", encoding="utf-8") as f:
            f.write("<html></html>")
        return path

    stream = io.StringIO()
    with patch("app.main.render_html", side_effect=fake_render):
        cli.write_output(MagicMock(), "html", stream=stream)
    assert stream.getvalue() == "<html></html>"
    assert list(tmp_path.iterdir()) == []
