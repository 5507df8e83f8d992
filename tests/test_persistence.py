"""Route table and loader tests."""

import orjson
import pytest

from folio.core.config import Config
from folio.core.exceptions import InvalidParameter, RouteTableError
from folio.core.handlers import CONTENT_FALLBACK
from folio.core.persistence import (
    CATCH_ALL_FALLBACK,
    DEFAULT_ROUTE_ROWS,
    HOME_FALLBACK,
    JsonRouteTable,
    MemoryRouteTable,
    RouteLoader,
    decode_options,
    default_rows,
    encode_options,
)
from folio.core.request import Request
from folio.core.router import HOME_DEFAULT, Router
from folio.utils.logger import LogLevel


def row(pattern, handler="", method="GET", **options):
    return {"method": method, "pattern": pattern, "handler": handler, "options": encode_options(options)}


@pytest.fixture
def make_router(memory_logger, content_store):
    def factory(table):
        return Router(
            content_store=content_store,
            route_table=table,
            persist_routes=True,
            logger=memory_logger,
        )
    return factory


class TestOptionsCodec:
    """Test the options column codec."""

    def test_encode(self):
        """Test options encode to JSON text."""
        assert orjson.loads(encode_options({"name": "home"})) == {"name": "home"}
        assert encode_options(None) == "{}"

    @pytest.mark.parametrize("raw", [None, "", "null", "{}", b"{}"])
    def test_decode_empty(self, raw):
        """Test empty forms decode to an empty mapping."""
        assert decode_options(raw) == {}

    def test_decode_mapping(self):
        """Test mappings pass through."""
        assert decode_options({"name": "x"}) == {"name": "x"}

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", 42])
    def test_decode_invalid(self, raw):
        """Test malformed options raise ValueError."""
        with pytest.raises(ValueError):
            decode_options(raw)

    def test_default_rows(self):
        """Test the default rows carry JSON options."""
        rows = default_rows()
        assert len(rows) == len(DEFAULT_ROUTE_ROWS) == 5
        assert all(isinstance(r["options"], str) for r in rows)
        assert decode_options(rows[2]["options"])["name"] == "blog.show"


class TestRouteTables:
    """Test the table providers."""

    def test_memory_missing(self):
        """Test a memory table built without rows is missing."""
        table = MemoryRouteTable()
        assert not table.has_table()
        with pytest.raises(RouteTableError):
            table.rows()

    def test_memory_rows_are_copies(self):
        """Test callers cannot mutate stored rows."""
        table = MemoryRouteTable([row("/a")])
        table.rows()[0]["pattern"] = "/changed"
        assert table.rows()[0]["pattern"] == "/a"

    def test_json_round_trip(self, tmp_path):
        """Test rows are written and read back through orjson."""
        table = JsonRouteTable(tmp_path / "storage" / "routes.json")
        assert not table.has_table()
        table.save([row("/about", name="about")])
        assert table.has_table()
        assert table.rows()[0]["pattern"] == "/about"

    def test_json_corrupt(self, tmp_path):
        """Test malformed files raise RouteTableError."""
        path = tmp_path / "routes.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(RouteTableError):
            JsonRouteTable(path).rows()

    def test_json_not_a_list(self, tmp_path):
        """Test a JSON object is not a table."""
        path = tmp_path / "routes.json"
        path.write_bytes(orjson.dumps({"routes": []}))
        with pytest.raises(RouteTableError):
            JsonRouteTable(path).rows()

    def test_reinitialize(self):
        """Test reinitialization stores the default rows."""
        table = MemoryRouteTable()
        table.reinitialize()
        assert [r["pattern"] for r in table.rows()] == [r["pattern"] for r in DEFAULT_ROUTE_ROWS]

    def test_upsert_replaces_same_method_and_pattern(self):
        """Test upsert keys rows by method and pattern."""
        table = MemoryRouteTable([row("/about"), row("/about", method="POST")])
        table.upsert(row("/about", handler="Pages@about"))
        table.upsert(row("/contact"))

        rows = table.rows()
        assert len(rows) == 3
        assert rows[0]["handler"] == "Pages@about"
        assert rows[1]["method"] == "POST"
        assert rows[2]["pattern"] == "/contact"

    def test_upsert_creates_table(self):
        """Test upsert into a missing table creates it."""
        table = MemoryRouteTable()
        table.upsert(row("/a"))
        assert len(table.rows()) == 1


class TestRouteLoaderRecovery:
    """Test self-healing of unusable tables."""

    @pytest.mark.parametrize("table", [MemoryRouteTable(), MemoryRouteTable([])], ids=["missing", "empty"])
    def test_missing_or_empty(self, make_router, table):
        """Test the router falls back to exactly two routes."""
        router = make_router(table)
        found = router.match("GET", "/")

        assert found.route.name == HOME_FALLBACK
        assert [r.name for r in router.routes] == [HOME_FALLBACK, CATCH_ALL_FALLBACK]
        assert len(table.rows()) == 5

    def test_corrupt_file(self, make_router, tmp_path, log_handler):
        """Test a corrupt file is rewritten with the default rows."""
        path = tmp_path / "routes.json"
        path.write_text("not json at all", encoding="utf-8")
        router = make_router(JsonRouteTable(path))

        assert router.match("GET", "/blog/hello-world").route.name == CATCH_ALL_FALLBACK
        assert len(router) == 2
        assert len(orjson.loads(path.read_bytes())) == 5
        assert log_handler.find("Route table unusable, reinitializing")

    def test_reseeded_rows_used_next_time(self, make_router):
        """Test a fresh router loads the reseeded defaults."""
        table = MemoryRouteTable()
        make_router(table).load_routes()

        fresh = make_router(table)
        assert fresh.match("GET", "/blog/hello-world").route.name == "blog.show"

    def test_reinitialize_failure_logged(self, make_router, log_handler):
        """Test a failing reinitialization still leaves fallback routes."""
        class ReadOnlyTable(MemoryRouteTable):
            def save(self, rows):
                raise OSError("read-only")

        router = make_router(ReadOnlyTable())
        router.load_routes()
        assert len(router) == 2
        assert log_handler.find("Route table reinitialization failed")


class TestRouteLoader:
    """Test hydration from a usable table."""

    def test_default_table(self, make_router):
        """Test the default frontend routes."""
        router = make_router(MemoryRouteTable(default_rows()))

        found = router.match("GET", "/blog/hello-world")
        assert found.route.name == "blog.show"
        assert found.params == {"slug": "hello-world"}

        archive = router.match("GET", "/blog/archive/2024/05")
        assert archive.route.name == "blog.archive"
        assert archive.params == {"year": "2024", "month": "05"}

        assert router.match("GET", "/blog/Hello").route.name == CATCH_ALL_FALLBACK
        assert router.match("GET", "/").route.name == "home"

    def test_essentials_added(self, make_router, log_handler):
        """Test missing root and catch-all routes are synthesized."""
        router = make_router(MemoryRouteTable([row("/about", name="about")]))
        router.ensure_routes_loaded()

        assert [r.name for r in router.routes] == ["about", HOME_DEFAULT, CATCH_ALL_FALLBACK]
        loaded = log_handler.find("Routes loaded")[0]
        assert loaded.context == {"count": 1, "skipped": 0}

    def test_bad_rows_skipped(self, make_router, log_handler):
        """Test malformed rows are logged and skipped."""
        table = MemoryRouteTable([
            row("/about", name="about"),
            {"method": "GET", "pattern": "/broken", "handler": "", "options": "{not json"},
            {"method": "GET", "handler": "", "options": "{}"},
            row("/admin", middleware=["auth"]),
            row("/bad-handler", handler="NoAtSign"),
            42,
            row("/contact", name="contact"),
        ])
        router = make_router(table)
        assert router.load_routes() == 2

        skipped = [r for r in log_handler.records if r.message == "Skipping route row"]
        assert [r.context["row"] for r in skipped] == [1, 2, 3, 4, 5]
        assert all(r.level == LogLevel.ERROR for r in skipped)
        assert {"about", "contact"} <= set(router.named_routes)

    def test_legacy_string_rows(self, make_router, log_handler):
        """Test bare pattern strings load as GET content routes."""
        router = make_router(MemoryRouteTable(["/about", row("/contact", name="contact")]))
        assert router.load_routes() == 2
        assert not log_handler.find("Skipping route row")

        legacy = router.routes[0]
        assert (legacy.method, legacy.pattern, legacy.handler) == ("GET", "/about", CONTENT_FALLBACK)
        assert router.match("GET", "/about").route is legacy

    def test_unusable_schemas_skipped(self, make_router, log_handler):
        """Test rows whose schema cannot be built are skipped at load."""
        table = MemoryRouteTable([
            row("/p/{id}", name="p", schema={"id": {"type": "integer", "min": "1"}}),
            row("/r/{id}", name="r", schema={"id": {"pattern": "["}}),
            row("/q/{id}", name="q", schema={"id": {"type": "integer", "max": "lots"}}),
        ])
        router = make_router(table)
        assert router.load_routes() == 1

        skipped = log_handler.find("Skipping route row")
        assert [r.context["row"] for r in skipped] == [1, 2]
        assert "p" in router.named_routes
        assert not {"q", "r"} & set(router.named_routes)

    def test_string_bounds_validate(self, make_router):
        """Test numeric bounds stored as strings still reject out-of-range values."""
        router = make_router(MemoryRouteTable([
            row("/p/{id}", name="p", schema={"id": {"type": "integer", "min": "1"}}),
        ]))
        with pytest.raises(InvalidParameter) as exc_info:
            router.dispatch(Request.build("GET", "/p/0"))
        assert exc_info.value.errors == {"id": ["The id must be at least 1"]}

    def test_middleware_aliases_from_table(self, make_router):
        """Test rows reference middleware by alias."""
        router = make_router(MemoryRouteTable([row("/admin", middleware=["auth"], name="admin")]))
        router.alias_middleware("auth", lambda request, params, next: next(request, params))
        router.ensure_routes_loaded()
        assert len(router.named_routes["admin"].middleware) == 1

    def test_schema_from_table(self, make_router):
        """Test rows carry parameter schemas."""
        router = make_router(MemoryRouteTable([
            row("/items/{id}", name="item", schema={"id": {"type": "integer"}}),
        ]))
        router.ensure_routes_loaded()
        assert router.named_routes["item"].validator is not None

    def test_loader_directly(self, memory_logger):
        """Test the loader can hydrate any router."""
        router = Router(logger=memory_logger)
        count = RouteLoader(MemoryRouteTable(default_rows()), memory_logger).load(router)
        assert count == 5
        assert len(router) == 6


class TestLazyLoading:
    """Test routes are loaded on first use."""

    def test_not_loaded_at_construction(self, make_router):
        """Test the table is untouched until the first match."""
        table = MemoryRouteTable()
        router = make_router(table)
        assert len(router) == 0
        assert not table.has_table()

        router.match("GET", "/")
        assert table.has_table()

    def test_loaded_once(self, make_router, log_handler):
        """Test repeated lookups load only once."""
        router = make_router(MemoryRouteTable(default_rows()))
        router.match("GET", "/a")
        router.match("GET", "/b")
        router.generate_url("blog.show", {"slug": "x"})
        assert len(log_handler.find("Routes loaded")) == 1

    def test_url_generation_loads(self, make_router):
        """Test URL generation triggers loading as well."""
        router = make_router(MemoryRouteTable(default_rows()))
        assert router.generate_url("blog.archive", {"year": 2024, "month": "05"}) == "/blog/archive/2024/05"

    def test_persistence_disabled(self, memory_logger):
        """Test persist_routes=False never reads the table."""
        table = MemoryRouteTable(default_rows())
        router = Router(route_table=table, logger=memory_logger)
        assert router.match("GET", "/blog/hello") is None
        assert len(router) == 0

    def test_load_without_table(self, router):
        """Test explicit loading needs a table."""
        with pytest.raises(RuntimeError):
            router.load_routes()


class TestPersistRoute:
    """Test storing routes."""

    def test_insert_and_replace(self, make_router):
        """Test persist_route upserts by method and pattern."""
        table = MemoryRouteTable(default_rows())
        router = make_router(table)

        router.persist_route("GET", "/blog/{slug}", "BlogController@show", {"name": "blog.show"})
        router.persist_route("GET", "/contact/", "Pages@contact", {"name": "contact"})

        rows = table.rows()
        assert len(rows) == 6
        assert rows[2]["handler"] == "BlogController@show"
        assert rows[5]["pattern"] == "/contact"
        assert decode_options(rows[5]["options"]) == {"name": "contact"}

    def test_registered_after_load(self, make_router):
        """Test persisting after loading registers the route live."""
        router = make_router(MemoryRouteTable(default_rows()))
        router.ensure_routes_loaded()
        router.persist_route("GET", "/contact", "Pages@contact", {"name": "contact"})
        assert router.named_routes["contact"].pattern == "/contact"

    def test_registered_outside_open_group(self, make_router):
        """Test the live route matches the stored row inside a group."""
        table = MemoryRouteTable(default_rows())
        router = make_router(table)
        router.ensure_routes_loaded()

        with router.group(prefix="/admin", name_prefix="admin."):
            router.persist_route("GET", "/contact", "Pages@contact", {"name": "contact"})

        assert table.rows()[-1]["pattern"] == "/contact"
        assert router.named_routes["contact"].pattern == "/contact"
        assert "admin.contact" not in router.named_routes

    def test_replaces_legacy_row(self, make_router):
        """Test upserting over a bare pattern string."""
        table = MemoryRouteTable(["/about", "/contact"])
        make_router(table).persist_route("GET", "/about", "Pages@about", {"name": "about"})

        rows = table.rows()
        assert len(rows) == 2
        assert rows[0]["handler"] == "Pages@about"
        assert rows[1] == {"method": "GET", "pattern": "/contact", "handler": "", "options": {}}

    def test_content_handler(self, make_router):
        """Test content routes persist with an empty handler."""
        table = MemoryRouteTable(default_rows())
        make_router(table).persist_route("GET", "/docs", None, {"name": "docs"})
        assert table.rows()[-1]["handler"] == ""

    def test_inline_rejected(self, make_router):
        """Test inline handlers cannot be stored."""
        router = make_router(MemoryRouteTable(default_rows()))
        with pytest.raises(ValueError):
            router.persist_route("GET", "/x", lambda request, params: None)

    def test_without_table(self, router):
        """Test persisting needs a table."""
        with pytest.raises(RuntimeError):
            router.persist_route("GET", "/x", "Pages@x")


class TestFromConfig:
    """Test building routers from configuration."""

    def test_json_table(self, tmp_path, content_dir):
        """Test configured tables and content roots are used."""
        path = tmp_path / "routes.json"
        JsonRouteTable(path).reinitialize()
        config = Config({
            "router": {"persist": True, "table": str(path)},
            "content": {"path": str(content_dir)},
            "app": {"url": "https://site.test"},
        })

        router = Router.from_config(config)
        assert router.persist_routes
        assert router.match("GET", "/blog/hello-world").route.name == "blog.show"
        assert router.generate_url("blog.list", absolute=True) == "https://site.test/blog"

    def test_defaults(self):
        """Test default configuration gives an in-memory router."""
        router = Router.from_config(Config())
        assert router.route_table is None
        assert not router.persist_routes
        assert router.base_url is None
