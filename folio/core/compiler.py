"""
Folio Pattern Compiler
======================

Turns path templates into compiled matchers.

Template syntax:
    /blog                       - Static path
    /blog/{slug}                - Placeholder, defaults to [^/]+
    /items/{id:[0-9]+}          - Inline sub-pattern
    /archive/{year:\\d{4}}       - Sub-patterns may contain braces
    /{path:.+}                  - Catch-all

Sub-patterns may also come from a per-route ``params`` override map; an
inline sub-pattern always takes precedence over the override.

Unsafe sub-patterns (invalid expressions, or more than five ``*``/``+``
quantifier characters) are replaced by the default ``[^/]+``. The
downgrade is logged and recorded on the matcher; compilation of a
well-formed template never fails because of an override.

Compiled matchers are cached per (template, override signature), so
registering structurally identical routes compiles once.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

import orjson

from folio.utils.logger import Logger, get_logger

DEFAULT_PATTERN = "[^/]+"
MAX_QUANTIFIERS = 5

_NAME_RE = re.compile(r"\w+")
_SLASHES_RE = re.compile(r"/{2,}")


def normalize_path(path: Optional[str]) -> str:
    """
    Normalize a request path.

    Collapses repeated slashes, removes the trailing slash and guarantees
    exactly one leading slash. Empty input becomes ``/``.

    Example:
        normalize_path("//blog//2024/") -> "/blog/2024"
    """
    segments = [segment for segment in (path or "").strip().split("/") if segment]
    return "/" + "/".join(segments)


class Token(NamedTuple):
    """A piece of a tokenized template: literal text or a placeholder."""

    kind: str
    value: str
    pattern: Optional[str] = None

    @property
    def is_param(self) -> bool:
        return self.kind == "param"

    def source(self) -> str:
        """Render the token back to template syntax."""
        if not self.is_param:
            return self.value
        if self.pattern:
            return "{" + self.value + ":" + self.pattern + "}"
        return "{" + self.value + "}"


def _closing_brace(template: str, start: int) -> Optional[int]:
    depth = 0
    i = start
    while i < len(template):
        char = template[i]
        if char == "\\":
            i += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def tokenize(template: str) -> List[Token]:
    """
    Split a template into literal and placeholder tokens.

    Braces that do not form a ``{name}`` or ``{name:pattern}``
    placeholder are kept as literal text.
    """
    tokens: List[Token] = []
    literal_start = 0
    i = 0

    while i < len(template):
        if template[i] == "{":
            end = _closing_brace(template, i)
            if end is not None:
                name, sep, pattern = template[i + 1:end].partition(":")
                if _NAME_RE.fullmatch(name):
                    if i > literal_start:
                        tokens.append(Token("text", template[literal_start:i]))
                    tokens.append(Token("param", name, pattern if sep and pattern else None))
                    i = literal_start = end + 1
                    continue
        i += 1

    if literal_start < len(template):
        tokens.append(Token("text", template[literal_start:]))

    return tokens


def normalize_template(template: str) -> str:
    """
    Normalize a path template the same way request paths are normalized.

    Only literal text is touched; sub-patterns are left verbatim.
    """
    tokens = tokenize((template or "").strip())
    rendered = "".join(
        _SLASHES_RE.sub("/", t.value) if not t.is_param else t.source()
        for t in tokens
    )
    if not rendered.startswith("/"):
        rendered = "/" + rendered
    if len(rendered) > 1 and tokens and not tokens[-1].is_param:
        rendered = rendered.rstrip("/") or "/"
    return rendered


@dataclass(frozen=True)
class CompilationFallback:
    """Record of an unsafe sub-pattern replaced by the default."""

    template: str
    param: str
    sub_pattern: str
    reason: str


class CompiledMatcher(ABC):
    """
    Maps a normalized path to captured parameters.

    Implementations are free to use regular expressions or a segment
    walker; the router only relies on this interface.
    """

    template: str

    @abstractmethod
    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Return captured parameters, or None when the path does not match."""

    @property
    def placeholders(self) -> Tuple[str, ...]:
        return ()

    @property
    def is_catch_all(self) -> bool:
        return False


class RegexMatcher(CompiledMatcher):
    """Matcher backed by a compiled regular expression."""

    __slots__ = ("template", "regex", "sub_patterns", "fallbacks")

    def __init__(
        self,
        template: str,
        regex: "re.Pattern[str]",
        sub_patterns: Dict[str, str],
        fallbacks: Tuple[CompilationFallback, ...] = (),
    ) -> None:
        self.template = template
        self.regex = regex
        self.sub_patterns = sub_patterns
        self.fallbacks = fallbacks

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.regex.match(path)
        if found is None:
            return None
        return {k: v for k, v in found.groupdict().items() if v is not None}

    @property
    def pattern(self) -> str:
        return self.regex.pattern

    @property
    def placeholders(self) -> Tuple[str, ...]:
        return tuple(self.sub_patterns)

    @property
    def is_catch_all(self) -> bool:
        """True for ``/{name:.+}`` style templates that match every path."""
        tokens = tokenize(self.template)
        if len(tokens) != 2 or tokens[0] != Token("text", "/") or not tokens[1].is_param:
            return False
        return self.sub_patterns.get(tokens[1].value) in (".+", ".*")

    def __repr__(self) -> str:
        return f"<RegexMatcher {self.template!r} -> {self.regex.pattern!r}>"


class LiteralMatcher(CompiledMatcher):
    """Exact-path matcher used for transient content routes."""

    __slots__ = ("template",)

    def __init__(self, path: str) -> None:
        self.template = path

    def match(self, path: str) -> Optional[Dict[str, str]]:
        return {} if path == self.template else None

    def __repr__(self) -> str:
        return f"<LiteralMatcher {self.template!r}>"


class PatternCompiler:
    """
    Compiles path templates into :class:`RegexMatcher` instances.

    Example:
        compiler = PatternCompiler()
        matcher = compiler.compile("/items/{id:[0-9]+}")
        matcher.match("/items/42")   # {"id": "42"}
        matcher.match("/items/abc")  # None
    """

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.logger = logger or get_logger("folio.compiler")
        self._cache: Dict[Tuple[str, str], RegexMatcher] = {}

    @staticmethod
    def signature(overrides: Optional[Mapping[str, Any]]) -> str:
        """Stable string form of an override map, used in cache keys."""
        if not overrides:
            return ""
        plain = {
            str(k): (v.pattern if isinstance(v, re.Pattern) else v)
            for k, v in overrides.items()
        }
        return orjson.dumps(plain, option=orjson.OPT_SORT_KEYS, default=str).decode("utf-8")

    def compile(
        self,
        template: str,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> RegexMatcher:
        """
        Compile a template, reusing a cached matcher when possible.

        Args:
            template: Path template (already normalized by the caller)
            overrides: Placeholder name to sub-pattern map

        Returns:
            Compiled matcher echoing ``template``

        Raises:
            ValueError: If the template itself is malformed (for example a
                placeholder name used twice)
        """
        key = (template, self.signature(overrides))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        matcher = self._build(template, dict(overrides or {}))
        self._cache[key] = matcher
        return matcher

    def _build(self, template: str, overrides: Dict[str, Any]) -> RegexMatcher:
        tokens = tokenize(template)
        fallbacks: List[CompilationFallback] = []
        sub_patterns: Dict[str, str] = {}

        for token in tokens:
            if not token.is_param:
                continue
            if token.value in sub_patterns:
                raise ValueError(f"Placeholder '{token.value}' appears twice in '{template}'")
            candidate = token.pattern or overrides.get(token.value)
            if isinstance(candidate, re.Pattern):
                candidate = candidate.pattern
            if not candidate:
                sub_patterns[token.value] = DEFAULT_PATTERN
                continue

            reason = self.rejection_reason(candidate)
            if reason is not None:
                fallbacks.append(self._fall_back(template, token.value, str(candidate), reason))
                candidate = DEFAULT_PATTERN
            sub_patterns[token.value] = candidate

        try:
            regex = self._assemble(tokens, sub_patterns)
        except re.error as exc:
            for name, sub in sub_patterns.items():
                if sub != DEFAULT_PATTERN:
                    fallbacks.append(self._fall_back(template, name, sub, f"does not combine: {exc}"))
                    sub_patterns[name] = DEFAULT_PATTERN
            try:
                regex = self._assemble(tokens, sub_patterns)
            except re.error as final:
                raise ValueError(f"Invalid path template '{template}': {final}") from final

        return RegexMatcher(template, regex, sub_patterns, tuple(fallbacks))

    @staticmethod
    def _assemble(tokens: List[Token], sub_patterns: Dict[str, str]) -> "re.Pattern[str]":
        parts = ["^"]
        for token in tokens:
            if token.is_param:
                parts.append(f"(?P<{token.value}>{sub_patterns[token.value]})")
            else:
                parts.append(re.escape(token.value))
        parts.append("$")
        return re.compile("".join(parts))

    @staticmethod
    def rejection_reason(sub_pattern: Any) -> Optional[str]:
        """Explain why a sub-pattern is unsafe, or return None if it is usable."""
        if not isinstance(sub_pattern, str):
            return f"not a string ({type(sub_pattern).__name__})"

        quantifiers = sub_pattern.count("*") + sub_pattern.count("+")
        if quantifiers > MAX_QUANTIFIERS:
            return f"{quantifiers} quantifier characters exceed the limit of {MAX_QUANTIFIERS}"

        try:
            re.compile(sub_pattern)
        except re.error as exc:
            return f"invalid expression: {exc}"

        return None

    def _fall_back(self, template: str, param: str, sub: str, reason: str) -> CompilationFallback:
        self.logger.warning(
            "Unsafe sub-pattern replaced by default",
            pattern=template,
            param=param,
            sub_pattern=sub,
            reason=reason,
        )
        return CompilationFallback(template, param, sub, reason)

    def clear(self) -> None:
        """Drop all cached matchers."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


__all__ = [
    "DEFAULT_PATTERN",
    "MAX_QUANTIFIERS",
    "normalize_path",
    "normalize_template",
    "tokenize",
    "Token",
    "CompilationFallback",
    "CompiledMatcher",
    "RegexMatcher",
    "LiteralMatcher",
    "PatternCompiler",
]
