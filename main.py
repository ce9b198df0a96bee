import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import config
from database import init_db
from session_gate import AuthStateNotifier, SessionGate
from utils.route_helpers import first_error_message, get_user_role
from routes.auth import router as auth_router
from routes.cdn import router as cdn_router
from routes.browse import router as browse_router
from routes.admin import router as admin_router
from routes.functions import router as functions_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = FastAPI(title="Dasitoty")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": first_error_message(exc)})

def configure_auth_state(app: FastAPI):
    """Auth events feed the session gate; both live on app.state."""
    notifier = AuthStateNotifier()
    gate = SessionGate(get_user_role)
    notifier.subscribe(gate.on_auth_state_change)
    app.state.auth_events = notifier
    app.state.session_gate = gate

# Initialize database
init_db()
configure_auth_state(app)

# Include routers
app.include_router(auth_router)
app.include_router(cdn_router)
app.include_router(browse_router)
app.include_router(admin_router)
app.include_router(functions_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT, reload=True)
