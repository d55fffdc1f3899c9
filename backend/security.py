from fastapi import Depends, HTTPException, status

from auth import get_current_profile
from models import Profile, UserRole


def require_role(*roles: UserRole):
    def _checker(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Role does not allow access")
        return profile

    return _checker


def require_student(profile: Profile = Depends(require_role(UserRole.STUDENT))) -> Profile:
    return profile


def require_jury(profile: Profile = Depends(require_role(UserRole.JURY))) -> Profile:
    return profile


def require_admin(profile: Profile = Depends(require_role(UserRole.ADMIN))) -> Profile:
    return profile


def ensure_event_access(profile: Profile, event_id: int) -> None:
    if profile.role == UserRole.ADMIN and profile.event_id is None:
        return
    if profile.event_id != event_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile does not belong to this event")
