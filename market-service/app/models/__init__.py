# app/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships
# Order matters for dependencies - import base models first

from app.db.base_class import Base
from app.models.account import Account
from app.models.contractor import Contractor, ContractorRole, ContractorMemberRole
from app.models.service import Service
from app.models.market_listing import MarketListing, AuctionDetails, MarketBid
from app.models.offer_session import OfferSession, OrderOffer, OfferMarketListing
from app.models.order import Order, MarketListingOrder
from app.models.public_contract import PublicContract, PublicContractOffer
