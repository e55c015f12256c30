import logging

from fastapi import Depends, FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from relay.app_proxy.config import ProxyConfig, get_proxy_config
from relay.app_proxy.route import router as proxy_router
from relay.vars import OTLP_ENDPOINT, OTLP_HEADERS, PROXY_MOUNT_PATH, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="Form Relay")
instrumentator = Instrumentator()

instrumentator.instrument(app).expose(app)

# Configure tracing; spans are only exported when an OTLP endpoint is set
trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=OTLP_HEADERS or None,
    )
    trace.get_tracer_provider().add_span_processor(BatchSpanProcessor(otlp_exporter))

    FastAPIInstrumentor.instrument_app(app, excluded_urls="healthz,metrics")

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})


@app.get("/healthz")
def healthz(config: ProxyConfig = Depends(get_proxy_config)):
    return {"ok": True, "proxying_to": config.target_url}


logger.info(f"Proxy mounted at {PROXY_MOUNT_PATH or '/'}")
app.include_router(proxy_router)
