"""HTML rendering of page results."""

from pathlib import Path
from typing import Dict

from jinja2 import Environment, PackageLoader, Template, select_autoescape

from .config import Settings
from .pages import (
    AdminUserList,
    BrowseListing,
    ErrorPage,
    GridView,
    IndexPage,
    InvalidCredentialsPage,
    LoginFormPage,
    MessagePage,
    NotFoundPage,
    PageResult,
    RegisterFormPage,
)
from .parse import HEIGHT, SEPARATOR, WIDTH

TEMPLATE_NAMES: Dict[type, str] = {
    IndexPage: "index.html",
    LoginFormPage: "login.html",
    RegisterFormPage: "register.html",
    BrowseListing: "browse.html",
    MessagePage: "message.html",
    GridView: "grid.html",
    NotFoundPage: "not_found.html",
    InvalidCredentialsPage: "error.html",
    ErrorPage: "error.html",
    AdminUserList: "admin.html",
}


class Renderer:
    """Turns page results into HTML.

    Built once per process; templates and the stylesheet are compiled up front.
    """

    def __init__(self, settings: Settings) -> None:
        self.site_hostname = settings.site_hostname
        self.url_prefix = settings.url_prefix
        self._settings = settings

        self._env = Environment(
            loader=PackageLoader("hostgrid", "templates"),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.globals.update(
            url=self.url,
            site_hostname=self.site_hostname,
            url_prefix=self.url_prefix,
            width=WIDTH,
            height=HEIGHT,
        )
        self._compiled: Dict[str, Template] = {
            name: self._env.get_template(name) for name in set(TEMPLATE_NAMES.values())
        }
        self.stylesheet = self._env.get_template("style.css").render()
        self.font = Path(settings.font_path).read_bytes() if settings.font_path else None

    def url(self, *segments: str) -> str:
        """Build the link for a query made of ``segments``."""
        return f"{self.url_prefix}{SEPARATOR.join(segments)}.{self.site_hostname}/"

    def admin_url(self, *segments: str) -> str:
        secret = self._settings.admin_secret
        if not secret:
            return ""
        return self.url("admin", secret.lower(), *segments)

    def render(self, page: PageResult) -> str:
        template = self._compiled[TEMPLATE_NAMES[type(page)]]
        return template.render(page=page, admin_url=self.admin_url)

    def render_error(self, header: str, description: str) -> str:
        return self.render(ErrorPage(header=header, description=description))

