import uvicorn, logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.routes.chat_route import router as chat_route
from app.routes.chatbot_route import router as chatbot_route
from app.routes.ai_route import router as ai_route
from app.routes.idx_route import router as idx_route
from app.routes.property_route import router as property_route
from app.routes.appointment_route import router as appointment_route
from app.routes.cma_route import router as cma_route
from app.routes.payment_route import router as payment_route

# marketplace routes
from app.routes.service_providers_route import router as service_providers_route
from app.routes.financing_route import router as financing_route
from app.routes.service_request_route import router as service_request_route
from app.routes.service_bundle_route import router as service_bundle_route, marketplace_router

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('app.log')
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Realty Marketplace API",
    description="Property listings, service marketplace, AI assistance, payments and real-time chat",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", []) if part != "body")
    message = first.get("msg", "Invalid request")
    logger.info(f"Rejected {request.method} {request.url.path}: {field} {message}")
    return JSONResponse(
        status_code=400,
        content={
            "error": f"{field}: {message}" if field else message,
            "details": jsonable_encoder(errors),
        },
    )


# register the routes
app.include_router(chat_route, prefix="/api/chat")
app.include_router(chatbot_route, prefix="/api/chatbot")
app.include_router(ai_route, prefix="/api/ai")
app.include_router(idx_route, prefix="/api/idx")
app.include_router(property_route, prefix="/api/properties")
app.include_router(appointment_route, prefix="/api/appointments")
app.include_router(cma_route, prefix="/api/cma")
app.include_router(payment_route, prefix="/api")

app.include_router(service_providers_route, prefix="/api/service-providers")
app.include_router(financing_route, prefix="/api/financing-providers")
app.include_router(service_request_route, prefix="/api/service-requests")
app.include_router(service_bundle_route, prefix="/api/service-bundles")
app.include_router(marketplace_router, prefix="/api/marketplace")


@app.get("/")
def root():
    return {"message": "Realty backend is running"}


@app.get("/api/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=9090, log_level="info")
