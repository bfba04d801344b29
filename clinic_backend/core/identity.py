from dataclasses import dataclass

from clinic_backend.models.user import UserType


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a scheduling operation."""

    id: int
    user_type: UserType
    clinic_id: int | None = None

    @property
    def is_parent(self) -> bool:
        return self.user_type is UserType.PARENT

    @property
    def is_staff(self) -> bool:
        return self.user_type is UserType.MEDICAL_STAFF

    @property
    def is_admin(self) -> bool:
        return self.user_type is UserType.ADMIN
