import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.database import build_session_factory, create_db_engine, init_database
from clinic_backend.routes import appointment_routes, medical_staff_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Vaccination Clinic API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()

    engine = create_db_engine(config.DATABASE_URL)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    try:
        init_database(engine)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('shutdown')
def dispose_database() -> None:
    engine = getattr(app.state, 'engine', None)
    if engine is not None:
        engine.dispose()


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Database error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={'detail': 'Database unavailable. Verify DATABASE_URL and database credentials.'},
    )


@app.get('/')
def root():
    return {'status': 'Vaccination Clinic API Running'}


app.include_router(appointment_routes.router, prefix='/api/v1/appointments')
app.include_router(medical_staff_routes.router, prefix='/api/v1/medical-staff')
