"""
Unit tests for the session-scoped cart.
"""

import pytest

from farmstore.exceptions import NotFoundError, ValidationError
from farmstore.services import cart_service


class TestCart:
    
    def test_add_merges_same_line(self, session, cart_session_id, variant):
        cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 1)
        cart = cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 2)
        
        assert len(cart['items']) == 1
        assert cart['itemCount'] == 3
        assert cart['subtotal'] == 298.5
    
    def test_lines_keep_insertion_order(self, session, cart_session_id, variant, second_variant):
        cart_service.add_to_cart(session, cart_session_id, second_variant.product_id, second_variant.id, 1)
        cart = cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 1)
        
        assert [i['variantId'] for i in cart['items']] == [second_variant.id, variant.id]
    
    def test_carts_are_isolated_by_session(self, session, cart_session_id, variant):
        cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 1)
        
        assert cart_service.get_cart(session, 'someone-else')['items'] == []
    
    def test_adding_does_not_reserve_stock(self, session, cart_session_id, variant):
        cart = cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 5)
        
        assert cart['items'][0]['variant']['stockQuantity'] == 2
    
    def test_rejects_non_positive_quantity(self, session, cart_session_id, variant):
        with pytest.raises(ValidationError):
            cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 0)
    
    def test_variant_must_belong_to_product(self, session, cart_session_id, variant, second_product):
        with pytest.raises(NotFoundError):
            cart_service.add_to_cart(session, cart_session_id, second_product.id, variant.id, 1)
    
    def test_update_to_zero_removes_line(self, session, cart_session_id, variant):
        cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 2)
        
        cart = cart_service.update_cart_item(session, cart_session_id, variant.product_id, variant.id, 0)
        
        assert cart['items'] == []
    
    def test_update_missing_line(self, session, cart_session_id, variant):
        with pytest.raises(NotFoundError):
            cart_service.update_cart_item(session, cart_session_id, variant.product_id, variant.id, 2)
    
    def test_remove_and_clear(self, session, cart_session_id, variant, second_variant):
        cart_service.add_to_cart(session, cart_session_id, variant.product_id, variant.id, 1)
        cart_service.add_to_cart(session, cart_session_id, second_variant.product_id, second_variant.id, 1)
        
        cart = cart_service.remove_from_cart(session, cart_session_id, variant.product_id, variant.id)
        assert [i['variantId'] for i in cart['items']] == [second_variant.id]
        
        cart_service.clear_cart(session, cart_session_id)
        session.commit()
        assert cart_service.get_cart_items(session, cart_session_id) == []
