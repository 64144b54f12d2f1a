# app/main.py
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from app.routers import messages, chat_socket
from app.db.mongo import client, verify_mongodb_connection
from app.core.config import settings
from app.utils.responses import format_error_response


app = FastAPI(
    title="Co-Living Chat",
    version="0.1.0",
    description="Real-time roommate chat: message delivery and conversation history",
)

# ✅ CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ✅ Startup/shutdown
@app.on_event("startup")
async def startup():
    await verify_mongodb_connection()

@app.on_event("shutdown")
async def shutdown_db():
    client.close()

# ✅ Health check
@app.get("/", tags=["root"], summary="Health check")
async def root():
    return {"status": "ok", "service": "Co-Living Chat"}

# ✅ Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(exc, status_code=exc.status_code),
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=format_error_response(exc, status_code=422),
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content=format_error_response(exc),
    )

# ✅ Routes
app.include_router(messages.router,    prefix="/conversation")
app.include_router(messages.router,    prefix="/api/messages")
app.include_router(chat_socket.router)
