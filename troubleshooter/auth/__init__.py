from .provider import AuthProvider, HeaderAuthProvider

__all__ = ["AuthProvider", "HeaderAuthProvider"]
