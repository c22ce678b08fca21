import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import LOG_LEVEL, STORE_BACKEND

# Import Routers
from app.api.v1.endpoints import auth, rules

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Social Rules Engine",
    description="Access-control decisions for the social app's document store"
)

# --- 1. SECURITY & MIDDLEWARE ---

# CORS: Allow the interception point to call in (Adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# JSON-only API: nothing may be loaded or framed from responses
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Cache-Control"] = "no-store"
        return response

app.add_middleware(SecurityHeadersMiddleware)

# --- 2. API ROUTES ---
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(rules.router, prefix="/api/v1/rules", tags=["Rules"])

@app.get("/health")
async def health():
    return {"status": "online", "store": STORE_BACKEND}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
