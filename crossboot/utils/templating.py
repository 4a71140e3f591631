from importlib import resources
from typing import Any, Callable, Final, Tuple

from jinja2 import BaseLoader, Environment, TemplateNotFound

TEMPLATE_SUFFIX: Final = ".jinja"


def get_template_str(template_name: str) -> str | None:
    res = resources.files("crossboot.resources").joinpath(
        f"{template_name}{TEMPLATE_SUFFIX}"
    )
    if not res.is_file():
        return None
    return res.read_text(encoding="utf-8")


class PackagedLoader(BaseLoader):
    def __init__(self) -> None:
        pass

    def get_source(
        self,
        environment: Environment,
        template: str,
    ) -> Tuple[str, str | None, Callable[[], bool] | None]:
        if payload := get_template_str(template):
            return payload, None, None
        raise TemplateNotFound(template)


def c_string_literal(s: str) -> str:
    """Quotes ``s`` as a C string literal."""
    escaped = (
        s.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


_JINJA_ENV: Final = Environment(
    loader=PackagedLoader(),
    autoescape=False,  # we're producing C sources
    auto_reload=False,  # templates ship with the package
    keep_trailing_newline=True,
)
_JINJA_ENV.filters["c_string"] = c_string_literal


def render_template_str(template_name: str, data: dict[str, Any]) -> str:
    tmpl = _JINJA_ENV.get_template(template_name)
    return tmpl.render(data)
