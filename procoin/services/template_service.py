"""Provider email template registry and rendering."""

import html
from string import Template
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

import structlog

from procoin.errors import UnknownProviderError
from procoin.templates.defaults import BRAND_NAMES, TEMPLATE_DEFAULTS, WARNING_BLOCK

logger = structlog.get_logger(__name__)

Renderer = Callable[[Mapping[str, Any]], str]

_WARNING = Template(WARNING_BLOCK)


def _escape(value: Any) -> str:
    if value is None:
        return ""
    return html.escape(str(value))


def make_renderer(source: str, brand: str) -> Renderer:
    """Compile a template source into a render function.

    Missing context keys render as empty strings. ``warning`` is wrapped
    in the warning block only when it is set.
    """
    template = Template(source)

    def render(context: Mapping[str, Any]) -> str:
        values = {key: _escape(value) for key, value in context.items()}
        values["brand"] = _escape(brand)
        warning = context.get("warning")
        values["warning_block"] = _WARNING.substitute(warning=_escape(warning)) if warning else ""
        return template.safe_substitute(_Defaulting(values))

    return render


class _Defaulting(dict):
    """Mapping that yields "" for unknown keys during substitution."""

    def __missing__(self, key: str) -> str:
        return ""


class TemplateRegistry:
    """Read-only mapping of provider key to render function.

    Built once at startup and injected into the notification handlers.
    """

    def __init__(self, renderers: Mapping[str, Renderer]):
        self._renderers = MappingProxyType(dict(renderers))

    @staticmethod
    def normalize(provider: str) -> str:
        return provider.strip().lower()

    def providers(self) -> list[str]:
        return sorted(self._renderers)

    def get(self, provider: str) -> Optional[Renderer]:
        return self._renderers.get(self.normalize(provider))

    def __contains__(self, provider: str) -> bool:
        return self.get(provider) is not None

    def render(self, provider: str, context: Mapping[str, Any]) -> str:
        """Render the provider's template.

        Raises:
            UnknownProviderError: If no template is registered for ``provider``
        """
        renderer = self.get(provider)
        if renderer is None:
            raise UnknownProviderError(provider)
        return renderer(context)


def build_template_registry(
    sources: Mapping[str, str] = TEMPLATE_DEFAULTS,
    brands: Mapping[str, str] = BRAND_NAMES,
) -> TemplateRegistry:
    """Compile template sources into a registry."""
    registry = TemplateRegistry(
        {
            key: make_renderer(source, brands.get(key, key.title()))
            for key, source in sources.items()
        }
    )
    logger.info("email_templates_loaded", providers=registry.providers())
    return registry
