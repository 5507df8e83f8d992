"""Command line tests."""

import orjson
import pytest

from folio.cli.main import cli, create_parser, load_object
from folio.core.persistence import JsonRouteTable


@pytest.fixture
def table_path(tmp_path, monkeypatch):
    for name in ("FOLIO_APP_URL", "FOLIO_ROUTER_TABLE", "FOLIO_CONTENT_PATH"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "routes.json"
    JsonRouteTable(path).reinitialize()
    return str(path)


@pytest.fixture
def site_module(tmp_path, monkeypatch):
    (tmp_path / "folio_cli_site.py").write_text(
        "from folio.core.router import Router\n"
        "\n"
        "router = Router()\n"
        "router.get('/feed.xml', 'FeedController@show', name='feed')\n"
        "router.get('/blog/{slug}', name='blog.show')\n"
        "not_a_router = 42\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    return "folio_cli_site"


class TestParser:
    """Test argument parsing."""

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        assert cli([]) == 0
        assert "usage: folio" in capsys.readouterr().out

    def test_version(self, capsys):
        """Test the version flag."""
        with pytest.raises(SystemExit) as exc_info:
            cli(["--version"])
        assert exc_info.value.code == 0
        assert "Folio 1.0.0" in capsys.readouterr().out

    def test_serve_defaults(self):
        """Test serve defaults."""
        args = create_parser().parse_args(["serve"])
        assert (args.target, args.host, args.port, args.reload) == (None, "127.0.0.1", 8000, False)


class TestRoutesCommand:
    """Test the routes command."""

    def test_list_table(self, table_path, capsys):
        """Test the persisted routes are listed in order."""
        assert cli(["routes", "--table", table_path]) == 0
        out = capsys.readouterr().out
        assert "blog.archive" in out
        assert out.index("blog.show") < out.index("page.any.fallback")
        assert "Total: 6 routes" in out

    def test_missing_table_recovers(self, tmp_path, capsys, monkeypatch):
        """Test a missing table is created and the fallbacks listed."""
        monkeypatch.delenv("FOLIO_ROUTER_TABLE", raising=False)
        path = tmp_path / "new" / "routes.json"
        assert cli(["routes", "--table", str(path)]) == 0
        out = capsys.readouterr().out
        assert "home.fallback" in out
        assert "Total: 2 routes" in out
        assert len(orjson.loads(path.read_bytes())) == 5

    def test_from_app(self, site_module, capsys):
        """Test routes of an importable router."""
        assert cli(["routes", "--app", f"{site_module}:router"]) == 0
        out = capsys.readouterr().out
        assert "FeedController@show" in out
        assert "(content)" in out

    def test_bad_app(self, site_module, capsys):
        """Test objects that carry no router are reported."""
        assert cli(["routes", "--app", f"{site_module}:not_a_router"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_empty_router(self, capsys, monkeypatch):
        """Test an empty in-memory router."""
        monkeypatch.delenv("FOLIO_ROUTER_TABLE", raising=False)
        monkeypatch.delenv("FOLIO_ROUTER_PERSIST", raising=False)
        assert cli(["routes"]) == 0
        assert "No routes found" in capsys.readouterr().out


class TestMatchCommand:
    """Test the match command."""

    def test_match(self, table_path, capsys):
        """Test a match prints the route and parameters."""
        assert cli(["match", "GET", "/blog/hello-world", "--table", table_path]) == 0
        out = capsys.readouterr().out
        assert "Route:   GET /blog/{slug}" in out
        assert "Name:    blog.show" in out
        assert "slug = hello-world" in out

    def test_no_match(self, table_path, capsys):
        """Test a miss exits with 1."""
        assert cli(["match", "POST", "/nothing", "--table", table_path]) == 1
        assert "No route matches POST /nothing" in capsys.readouterr().err


class TestUrlCommand:
    """Test the url command."""

    def test_url(self, table_path, capsys):
        """Test URLs are generated and encoded."""
        assert cli(["url", "blog.show", "slug=hello world", "--table", table_path]) == 0
        assert capsys.readouterr().out.strip() == "/blog/hello%20world"

    def test_absolute(self, table_path, capsys):
        """Test absolute URLs without a configured base."""
        assert cli(["url", "blog.list", "--absolute", "--table", table_path]) == 0
        assert capsys.readouterr().out.strip() == "http://localhost/blog"

    def test_missing_parameter(self, table_path, capsys):
        """Test a missing parameter exits with 1."""
        assert cli(["url", "blog.show", "--table", table_path]) == 1
        assert "slug" in capsys.readouterr().err

    def test_bad_pair(self, table_path, capsys):
        """Test malformed parameters exit with 2."""
        assert cli(["url", "blog.show", "slug", "--table", table_path]) == 2
        assert "key=value" in capsys.readouterr().err


class TestLoadObject:
    """Test module:attribute loading."""

    def test_load(self, site_module):
        """Test attributes are imported."""
        assert load_object(f"{site_module}:not_a_router") == 42

    @pytest.mark.parametrize("spec", ["nocolon", ":attr", "module:"])
    def test_invalid_spec(self, spec):
        """Test malformed specs raise ValueError."""
        with pytest.raises(ValueError):
            load_object(spec)

    def test_missing_attribute(self, site_module):
        """Test missing attributes raise ValueError."""
        with pytest.raises(ValueError):
            load_object(f"{site_module}:missing")
