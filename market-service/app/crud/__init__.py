# market-service/app/crud/__init__.py

from . import crud_account
from . import crud_contractor
from . import crud_market_listing
from . import crud_offer_session
from . import crud_order
from . import crud_public_contract
from . import crud_service
