import json
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, crud, schemas
from .auth import create_access_token
from .db import Base, SessionLocal, engine
from .dependencies import admin_only, authenticated, factory_only, get_db, get_erp_service
from .erp import ERPService
from .errors import BadRequest, Forbidden, InvalidCredentials, MissingCredentials, NotFound, ProcedureError
from .models import OrderStatus, Role
from .seed import seed_demo_data
from .utils import utcnow

logging.basicConfig(
    level=config.get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables if not existing. In production, use Alembic.
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.get_settings().seed_demo_data:
        db = SessionLocal()
        try:
            seed_demo_data(db)
        finally:
            db.close()
    yield


app = FastAPI(title="Zenith OLMS", version="1.0.0", lifespan=lifespan)


@app.exception_handler(ProcedureError)
async def procedure_error_handler(request: Request, exc: ProcedureError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("persistence error on %s %s", request.method, request.url.path)
    body = {"detail": "Internal server error", "code": "INTERNAL_SERVER_ERROR"}
    if config.get_settings().debug:
        body["diagnostic"] = str(exc)
    return JSONResponse(status_code=500, content=body)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response


def _order_or_404(db: Session, order_id: str):
    order = crud.get_order(db, order_id)
    if not order:
        raise NotFound("Order not found")
    return order


def _ensure_can_view(user: schemas.AuthUser, order) -> None:
    # customers only ever see their own orders
    if user.role == Role.CUSTOMER and order.user_id != user.id:
        raise Forbidden("Access denied: Cannot view this order")


@app.get("/health")
@app.get("/api/health")
async def health():
    return {"status": "ok", "message": "Server is running", "version": app.version, "auth": "enabled"}


# -------------------- users --------------------

@app.post("/trpc/users.login", response_model=schemas.LoginResult)
async def users_login(request: Request, db: Session = Depends(get_db)):
    # Only the flat {"email": ..., "password": ...} JSON object is accepted
    try:
        payload = json.loads(await request.body() or b"null")
    except ValueError:
        raise MissingCredentials()
    email = payload.get("email") if isinstance(payload, dict) else None
    password = payload.get("password") if isinstance(payload, dict) else None
    if not (isinstance(email, str) and email.strip() and isinstance(password, str) and password):
        raise MissingCredentials()

    # password hashing is CPU bound, keep it off the event loop
    user = await run_in_threadpool(crud.authenticate, db, email, password)
    if not user:
        logger.warning("login rejected for %s", email)
        raise InvalidCredentials()
    return schemas.LoginResult(user=schemas.AuthUser.model_validate(user), token=create_access_token(user))


@app.get("/trpc/users.me", response_model=schemas.AuthUser)
def users_me(user: schemas.AuthUser = Depends(authenticated)):
    return user


@app.get("/trpc/users.getAll", response_model=List[schemas.UserRead])
def users_get_all(db: Session = Depends(get_db), user: schemas.AuthUser = Depends(admin_only)):
    return crud.list_users(db)


@app.get("/trpc/users.getById", response_model=schemas.UserRead)
def users_get_by_id(id: str = Query(...), db: Session = Depends(get_db),
                    user: schemas.AuthUser = Depends(authenticated)):
    found = crud.get_user(db, id)
    if not found:
        raise NotFound("User not found")
    if user.role != Role.ADMIN and user.id != id:
        raise Forbidden()
    return found


@app.post("/trpc/users.createUser", response_model=schemas.UserRead)
def users_create(payload: schemas.UserCreate, db: Session = Depends(get_db),
                 user: schemas.AuthUser = Depends(admin_only)):
    try:
        return crud.create_user(db, payload)
    except ValueError as e:
        raise BadRequest(str(e))


@app.post("/trpc/users.updatePassword")
def users_update_password(payload: schemas.PasswordUpdate, db: Session = Depends(get_db),
                          user: schemas.AuthUser = Depends(admin_only)):
    if not crud.update_password(db, payload.userId, payload.newPassword):
        raise NotFound("User not found")
    logger.info("password rotated for user %s by %s", payload.userId, user.id)
    return {"success": True}


# -------------------- orders --------------------

@app.get("/trpc/orders.getAll", response_model=List[schemas.OrderRead])
def orders_get_all(db: Session = Depends(get_db), user: schemas.AuthUser = Depends(admin_only)):
    return crud.list_orders(db)


@app.get("/trpc/orders.getByUserId", response_model=List[schemas.OrderRead])
def orders_get_by_user(userId: str = Query(...), db: Session = Depends(get_db),
                       user: schemas.AuthUser = Depends(authenticated)):
    if user.role == Role.CUSTOMER and user.id != userId:
        raise Forbidden("Access denied: Cannot view other customers' orders")
    return crud.list_orders_by_user(db, userId)


@app.get("/trpc/orders.getByStatus", response_model=List[schemas.OrderRead])
def orders_get_by_status(status: OrderStatus = Query(...), db: Session = Depends(get_db),
                         user: schemas.AuthUser = Depends(factory_only)):
    return crud.list_orders_by_status(db, status)


@app.get("/trpc/orders.getById", response_model=schemas.OrderRead)
def orders_get_by_id(id: str = Query(...), db: Session = Depends(get_db),
                     user: schemas.AuthUser = Depends(authenticated)):
    order = _order_or_404(db, id)
    _ensure_can_view(user, order)
    return order


@app.get("/trpc/orders.getOrderTimeline", response_model=List[schemas.TimelineEventRead])
def orders_get_timeline(orderId: str = Query(...), db: Session = Depends(get_db),
                        user: schemas.AuthUser = Depends(authenticated)):
    order = _order_or_404(db, orderId)
    _ensure_can_view(user, order)
    return crud.get_order_timeline(db, orderId)


@app.post("/trpc/orders.updateStatus", response_model=schemas.OrderRead)
def orders_update_status(payload: schemas.StatusUpdate, db: Session = Depends(get_db),
                         user: schemas.AuthUser = Depends(admin_only)):
    order = crud.update_order_status(db, payload.id, payload.status, payload.description)
    if not order:
        raise NotFound("Order not found")
    logger.info("order %s moved to %s by %s", order.id, order.status, user.id)
    return order


@app.post("/trpc/orders.addSuggestion", response_model=schemas.OrderRead)
def orders_add_suggestion(payload: schemas.SuggestionCreate, db: Session = Depends(get_db),
                          user: schemas.AuthUser = Depends(factory_only)):
    order = crud.set_suggestion(db, payload.id, payload.suggestion)
    if not order:
        raise NotFound("Order not found")
    return order


@app.post("/trpc/orders.createOrder", response_model=schemas.OrderRead)
def orders_create(payload: schemas.OrderCreate, db: Session = Depends(get_db),
                  user: schemas.AuthUser = Depends(admin_only)):
    try:
        return crud.create_order(db, payload)
    except LookupError as e:
        raise NotFound(str(e))
    except ValueError as e:
        raise BadRequest(str(e))


@app.post("/trpc/orders.deleteOrder")
def orders_delete(payload: schemas.OrderRef, db: Session = Depends(get_db),
                  user: schemas.AuthUser = Depends(admin_only)):
    if not crud.delete_order(db, payload.id):
        raise NotFound("Order not found")
    logger.info("order %s deleted by %s", payload.id, user.id)
    return {"success": True}


@app.get("/trpc/orders.getAnalytics", response_model=schemas.Analytics)
def orders_get_analytics(db: Session = Depends(get_db), user: schemas.AuthUser = Depends(admin_only)):
    return crud.order_analytics(db)


# -------------------- erp --------------------

@app.get("/trpc/erp.getLogicMateStatus")
async def erp_logicmate_status(erp: ERPService = Depends(get_erp_service),
                               user: schemas.AuthUser = Depends(admin_only)):
    data = await erp.logicmate_orders()
    return {"connected": True, "lastSync": utcnow().isoformat(), "data": data}


@app.get("/trpc/erp.getSuntecStatus")
async def erp_suntec_status(erp: ERPService = Depends(get_erp_service),
                            user: schemas.AuthUser = Depends(factory_only)):
    data = await erp.suntec_factory_status()
    return {"connected": True, "lastSync": utcnow().isoformat(), "data": data}


@app.get("/trpc/erp.getOrderERPDetails")
async def erp_order_details(orderId: str = Query(...), erp: ERPService = Depends(get_erp_service),
                            user: schemas.AuthUser = Depends(admin_only)):
    return await erp.order_details(orderId)


@app.post("/trpc/erp.syncAll")
async def erp_sync_all(erp: ERPService = Depends(get_erp_service), user: schemas.AuthUser = Depends(admin_only)):
    return await erp.sync_all()


@app.post("/trpc/erp.updateInventory")
async def erp_update_inventory(payload: schemas.InventoryUpdate, erp: ERPService = Depends(get_erp_service),
                               user: schemas.AuthUser = Depends(admin_only)):
    ok = await erp.update_inventory(payload.productId, payload.quantity)
    return {"success": ok, "timestamp": utcnow().isoformat()}


@app.post("/trpc/erp.updateFactoryStatus")
async def erp_update_factory_status(payload: schemas.FactoryStatusUpdate,
                                    erp: ERPService = Depends(get_erp_service),
                                    user: schemas.AuthUser = Depends(factory_only)):
    ok = await erp.update_factory_status(payload.orderId, payload.status)
    return {"success": ok, "timestamp": utcnow().isoformat()}
