from dataclasses import dataclass

from fastapi import Header, HTTPException, status

ROLES = ("student", "teacher")


@dataclass
class CurrentUser:
    id: str
    role: str


# Identity comes from the upstream auth gateway and is trusted as-is.
def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> CurrentUser:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity",
        )
    role = (x_user_role or "").lower()
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user role",
        )
    return CurrentUser(id=x_user_id, role=role)
