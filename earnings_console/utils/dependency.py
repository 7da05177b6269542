import base64
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from earnings_console.config.config import Config
from earnings_console.service.earnings_cache import EarningsCache
from earnings_console.service.earnings_service import EarningsService
from earnings_console.service.marketplace_client import MarketplaceApiClient
from earnings_console.service.withdrawal_service import WithdrawalService
from earnings_console.utils.logger import log


@dataclass(frozen=True)
class VendorPrincipal:
    vendor_id: str
    token: str


def verify_token(authorization: Optional[str] = Header(None)) -> VendorPrincipal:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing",
        )

    try:
        token = authorization.replace("Bearer ", "", 1)

        public_key = base64.b64decode(Config.PUBLIC_KEY)

        payload = jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            audience=Config.HOST_NAME,
            issuer=Config.SECURITY_HOST,
        )

        log.info(f"Authentication successful for vendor {payload['sub']}")
        return VendorPrincipal(vendor_id=payload["sub"], token=token)

    except ExpiredSignatureError:
        log.error("Token has expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
        )
    except InvalidTokenError as e:
        log.error(f"Invalid token: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    except Exception as e:
        log.error(f"Unexpected error during token verification: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
        )


def get_marketplace_client(
    principal: VendorPrincipal = Depends(verify_token),
) -> MarketplaceApiClient:
    # The vendor's own token is forwarded to the marketplace API.
    return MarketplaceApiClient(token_provider=lambda: principal.token)


def get_earnings_cache() -> EarningsCache:
    return EarningsCache()


def get_earnings_service(
    client: MarketplaceApiClient = Depends(get_marketplace_client),
    cache: EarningsCache = Depends(get_earnings_cache),
) -> EarningsService:
    return EarningsService(client, cache=cache)


def get_withdrawal_service(
    client: MarketplaceApiClient = Depends(get_marketplace_client),
    earnings_service: EarningsService = Depends(get_earnings_service),
    cache: EarningsCache = Depends(get_earnings_cache),
) -> WithdrawalService:
    return WithdrawalService(client, earnings_service, cache=cache)
