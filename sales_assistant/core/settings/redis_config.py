"""Redis connection configuration."""

from urllib.parse import urlsplit

from pydantic import BaseModel, SecretStr


class RedisConfig(BaseModel, frozen=True):
    """Redis connection settings.

    Both values are optional at load time. The password comes from the token
    or, for ``KV_URL`` style deployments, from the URL itself.
    """

    url: str | None
    token: SecretStr | None

    @property
    def password(self) -> str | None:
        """Explicit token, if one is set."""
        if self.token and self.token.get_secret_value():
            return self.token.get_secret_value()
        return None

    @property
    def url_has_password(self) -> bool:
        return bool(self.url and urlsplit(self.url).password)

    @property
    def is_configured(self) -> bool:
        """Check that there is a URL and a password for it."""
        return bool(self.url) and (self.password is not None or self.url_has_password)
