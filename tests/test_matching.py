"""Route matching tests."""

from folio.core.fallback import MemoryContentStore
from folio.core.request import Request
from folio.core.router import CONTENT_ROUTE, HOME_IMPLICIT, Router


def handler(request, params):
    return params


class TestMatchOrder:
    """Test registry order decides the winner."""

    def test_first_match_wins(self, router):
        """Test the earlier of two overlapping routes wins."""
        router.get("/blog/{slug}", handler, name="blog.show")
        router.get("/blog/featured", handler, name="blog.featured")
        found = router.match("GET", "/blog/featured")
        assert found.route.name == "blog.show"
        assert found.params == {"slug": "featured"}

    def test_static_registered_first(self, router):
        """Test a static route registered first shadows the dynamic one."""
        router.get("/blog/featured", handler, name="blog.featured")
        router.get("/blog/{slug}", handler, name="blog.show")
        assert router.match("GET", "/blog/featured").route.name == "blog.featured"
        assert router.match("GET", "/blog/other").route.name == "blog.show"

    def test_method_must_match(self, router):
        """Test routes of other methods are skipped."""
        router.post("/contact", handler, name="contact.send")
        router.get("/contact", handler, name="contact.form")
        assert router.match("GET", "/contact").route.name == "contact.form"
        assert router.match("post", "/contact").route.name == "contact.send"

    def test_other_method_no_route(self, router):
        """Test a route of another method is not a match."""
        router.post("/submit", handler)
        assert router.match("DELETE", "/submit") is None

    def test_path_is_normalized(self, router):
        """Test duplicate and trailing slashes are ignored."""
        router.get("/blog/{slug}", handler, name="blog.show")
        found = router.match("GET", "//blog//hello/")
        assert found.route.name == "blog.show"
        assert found.params == {"slug": "hello"}

    def test_multiple_params(self, router):
        """Test every placeholder is captured."""
        router.get("/blog/archive/{year}/{month}", handler, params={"year": r"\d{4}", "month": r"\d{2}"})
        assert router.match("GET", "/blog/archive/2024/05").params == {"year": "2024", "month": "05"}
        assert router.match("GET", "/blog/archive/2024/5") is None


class TestImplicitRoutes:
    """Test matches without a registered route."""

    def test_root_without_route(self, router):
        """Test / matches an implicit home route."""
        found = router.match("GET", "/")
        assert found.route.name == HOME_IMPLICIT
        assert found.params == {}

    def test_root_any_method(self, router):
        """Test the implicit root match applies to every method."""
        assert router.match("POST", "/").route.name == HOME_IMPLICIT
        assert router.match("POST", "").route.name == HOME_IMPLICIT

    def test_registered_root_preferred(self, router):
        """Test a registered root route wins over the implicit one."""
        router.get("/", handler, name="home")
        assert router.match("GET", "/").route.name == "home"

    def test_content_fallback(self, router):
        """Test existing content resolves to a transient route."""
        found = router.match("GET", "/about")
        assert found.route.name == CONTENT_ROUTE
        assert found.route.pattern == "/about"
        assert found.params == {}

    def test_content_fallback_nested(self, router):
        """Test nested identifiers resolve."""
        assert router.match("GET", "/blog/hello/").route.name == CONTENT_ROUTE

    def test_content_fallback_get_only(self, router):
        """Test other methods never fall back to content."""
        assert router.match("POST", "/about") is None

    def test_transient_route_not_registered(self, router):
        """Test content fallback routes do not enter the registry."""
        router.match("GET", "/about")
        assert len(router) == 0
        assert router.named_routes == {}

    def test_missing_content(self, router):
        """Test nothing matches unknown content."""
        assert router.match("GET", "/missing") is None

    def test_without_store(self, memory_logger):
        """Test a router without content store only falls back at the root."""
        bare = Router(logger=memory_logger)
        assert bare.match("GET", "/about") is None
        assert bare.match("GET", "/").route.name == HOME_IMPLICIT


class TestMatchCache:
    """Test the match cache."""

    def test_repeat_match_is_cached(self, router):
        """Test the same request returns the same match object."""
        router.get("/blog/{slug}", handler)
        first = router.match("GET", "/blog/hello")
        assert router.match("GET", "/blog/hello/") is first

    def test_negative_result_is_cached(self, memory_logger):
        """Test a miss stays cached until the registry changes."""
        store = MemoryContentStore()
        router = Router(content_store=store, logger=memory_logger)

        assert router.match("GET", "/news") is None
        store.add("news")
        assert router.match("GET", "/news") is None

        router.reset()
        assert router.match("GET", "/news").route.name == CONTENT_ROUTE

    def test_registration_clears_cache(self, router):
        """Test adding a route invalidates earlier results."""
        assert router.match("GET", "/contact") is None
        router.get("/contact", handler, name="contact")
        assert router.match("GET", "/contact").route.name == "contact"

    def test_naming_clears_cache(self, router):
        """Test renaming is visible to cached lookups."""
        router.get("/contact", handler)
        assert router.match("GET", "/contact").route.name is None
        router.name("contact")
        assert router.match("GET", "/contact").route.name == "contact"

    def test_cache_keyed_by_method(self, router):
        """Test methods are cached separately."""
        router.get("/form", handler, name="form.show")
        router.post("/form", handler, name="form.send")
        assert router.match("GET", "/form").route.name == "form.show"
        assert router.match("POST", "/form").route.name == "form.send"


class TestMatchRequest:
    """Test matching request objects."""

    def test_match_request(self, router):
        """Test requests match by method and path."""
        router.get("/blog/{slug}", handler, name="blog.show")
        found = router.match_request(Request.build("GET", "/blog/hello?page=2"))
        assert found.route.name == "blog.show"
        assert found.params == {"slug": "hello"}

    def test_match_logs(self, router, log_handler):
        """Test matches and misses are logged at debug level."""
        router.get("/a", handler)
        router.match("GET", "/a")
        router.match("GET", "/b")
        assert log_handler.find("Route matched")[0].context["pattern"] == "/a"
        assert log_handler.find("No route matched")[0].context["path"] == "/b"
