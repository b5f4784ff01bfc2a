"""Postal collaborator - pincode lookup and rate-quote passthrough."""
import logging
import re
from typing import Dict, Any, Optional

import requests
from flask import current_app

from farmstore.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)

PINCODE_RE = re.compile(r'^\d{6}$')

# Delivery partners do not collect cash in these states
COD_EXCLUDED_STATES = {'Andaman and Nicobar Islands', 'Lakshadweep'}


class PostalService:
    """Client for the India Post pincode directory and a rate-quote endpoint."""
    
    def __init__(self, pincode_api_url: str, rate_quote_url: Optional[str] = None, timeout: int = 10):
        self.pincode_api_url = pincode_api_url.rstrip('/')
        self.rate_quote_url = rate_quote_url
        self.timeout = timeout
    
    @staticmethod
    def is_cod_available(state: str) -> bool:
        return state not in COD_EXCLUDED_STATES
    
    def validate_pincode(self, pincode: str) -> Optional[Dict[str, Any]]:
        """
        Look up a pincode.
        
        Returns:
            Dict with pincode, city, district, state, codAvailable; None if unknown
        
        Raises:
            ValidationError: pincode is not 6 digits
            StoreError: directory unreachable (503)
        """
        if not PINCODE_RE.match(pincode or ''):
            raise ValidationError('Invalid pincode format. Must be 6 digits.')
        
        url = f"{self.pincode_api_url}/pincode/{pincode}"
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[SHIPPING] Pincode lookup failed for {pincode}: {e}")
            raise StoreError('Pincode service unavailable', 503) from e
        
        # The directory answers a one-element list
        entry = (data[0] if isinstance(data, list) and data else data) or {}
        offices = entry.get('PostOffice') or []
        if entry.get('Status') != 'Success' or not offices:
            return None
        
        office = offices[0]
        return {
            'pincode': pincode,
            'city': office.get('Name'),
            'district': office.get('District'),
            'state': office.get('State'),
            'codAvailable': self.is_cod_available(office.get('State', '')),
        }
    
    def quote_rates(self, from_pincode: str, to_pincode: str, weight, cod_amount=None) -> Dict[str, Any]:
        """Forward a rate request to the configured quote service (display only)."""
        if not self.rate_quote_url:
            raise StoreError('Shipping rate service is not configured', 503)
        
        payload = {
            'fromPincode': from_pincode,
            'toPincode': to_pincode,
            'weight': float(weight),
        }
        if cod_amount is not None:
            payload['codAmount'] = float(cod_amount)
        
        try:
            response = requests.post(self.rate_quote_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[SHIPPING] Rate quote failed {from_pincode} -> {to_pincode}: {e}")
            raise StoreError('Shipping rate service unavailable', 503) from e


def get_postal_service() -> PostalService:
    cfg = current_app.config
    return PostalService(
        cfg.get('SHIPPING_PINCODE_API_URL', 'https://api.postalpincode.in'),
        rate_quote_url=cfg.get('SHIPPING_RATE_QUOTE_URL'),
        timeout=cfg.get('SHIPPING_TIMEOUT', 10)
    )
