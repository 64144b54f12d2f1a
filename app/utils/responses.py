# app/utils/responses.py

def format_error_response(exc, status_code=500):
    return {
        "success": False,
        "error": {
            "type": exc.__class__.__name__,
            "detail": str(exc.detail) if hasattr(exc, "detail") else str(exc),
            "status_code": status_code
        }
    }
