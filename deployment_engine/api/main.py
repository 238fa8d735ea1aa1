from fastapi import FastAPI
from deployment_engine.api.routes.app_deployments import router as app_deployments_router

app = FastAPI(title="Deployment Engine API")

@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(app_deployments_router)
