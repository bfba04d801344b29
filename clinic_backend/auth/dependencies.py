from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.core.identity import Actor
from clinic_backend.database import get_db
from clinic_backend.models.user import User, UserType

security = HTTPBearer()


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Actor:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    subject = payload.get("sub")
    try:
        user_id = int(subject)
        user_type = UserType(payload.get("user_type"))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid token subject") from exc

    user = db.query(User).filter(
        User.id == user_id,
        User.user_type == user_type.value,
        User.is_active.is_(True),
    ).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return Actor(id=user.id, user_type=user_type, clinic_id=user.clinic_id)
