"""Find-or-create of CRM contacts keyed by phone number.

Known race: two near-simultaneous calls from the same number can both
miss the search and both create a contact.  The CRM offers no
conditional create and this service holds no lock, so duplicates under
concurrent delivery are possible.
"""

from __future__ import annotations

import logging

from appointment_routing.models import Contact
from appointment_routing.services.ghl_client import GHLClient

logger = logging.getLogger(__name__)


class ContactResolver:
    def __init__(self, ghl_client: GHLClient) -> None:
        self._ghl = ghl_client

    async def resolve(self, phone: str, location_id: str) -> Contact:
        """Return the first contact whose phone contains ``phone``, creating
        one with just the phone and location when the search is empty.

        CRM errors propagate as ``GHLAPIError``.
        """
        matches = await self._ghl.search_contacts_by_phone(phone, location_id)
        if matches:
            contact_id = str(matches[0]["id"])
            if len(matches) > 1:
                logger.info(
                    "%d contacts match phone %s; using the first (%s)",
                    len(matches), phone, contact_id,
                )
            return Contact(contact_id=contact_id, phone=phone, location_id=location_id)

        created = await self._ghl.create_contact(phone, location_id)
        contact_id = str(created["id"])
        logger.info("Created contact %s for phone %s", contact_id, phone)
        return Contact(contact_id=contact_id, phone=phone, location_id=location_id)
