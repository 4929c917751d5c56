"""PDF image extraction tools package."""


def cli_main(*args, **kwargs):
    from .cli import main

    return main(*args, **kwargs)


__all__ = ["cli_main"]
