from simple_tax.api.app import create_app

__all__ = ["create_app"]
