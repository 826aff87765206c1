"""Configuration package for searchdoctor settings."""

__all__ = ["CONFIG_ENV_VAR", "ConfigController"]


def __getattr__(name: str):
    if name in {"ConfigController", "CONFIG_ENV_VAR"}:
        from config import controller

        return getattr(controller, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
