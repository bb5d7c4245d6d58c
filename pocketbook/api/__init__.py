from pocketbook.api.router import router

__all__ = ["router"]
