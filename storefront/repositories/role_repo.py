# storefront/repositories/role_repo.py
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import Client

logger = logging.getLogger(__name__)

TABLE = "user_roles"

# PostgREST "no rows" codes; a missing row simply means "not admin"
NOT_FOUND_CODES = {"PGRST116", "204"}


class RoleRepository:
    """
    Authorization lookup against the `user_roles` table.
    """

    def __init__(self, client: Client):
        self.client = client

    def is_admin(self, account_id: str) -> bool:
        """
        Return True only if an admin role row exists for this account.

        Fail-closed: a missing row is a normal False, and any lookup
        failure is logged and also treated as False.
        """
        try:
            response = (
                self.client.table(TABLE)
                .select("role")
                .eq("user_id", account_id)
                .eq("role", "admin")
                .maybe_single()
                .execute()
            )
        except APIError as e:
            if e.code not in NOT_FOUND_CODES:
                logger.error("Error checking admin role [%s]: %s", e.code, e.message)
            return False
        except httpx.HTTPError as e:
            logger.error("Error checking admin role: %s", e)
            return False

        return bool(response is not None and response.data)
