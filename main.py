from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db
from errors import global_exception_handler, http_exception_handler, validation_exception_handler
from routers import accounts, admission_cycles, institutions, reference, saved_schools

# Create FastAPI app
app = FastAPI(title="University Search Backend")

# Ensure database tables exist on startup
@app.on_event("startup")
def startup_event():
    settings.validate()
    init_db()

# Global Custom Error Handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)

app.include_router(institutions.router)
app.include_router(admission_cycles.router)
app.include_router(saved_schools.router)
app.include_router(reference.router)
app.include_router(accounts.router)

@app.get("/")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "university-search-backend"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
