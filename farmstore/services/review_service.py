"""Product ratings left from delivered orders."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from farmstore.models import Order, OrderItem, OrderStatus, ProductReview
from farmstore.exceptions import BusinessLogicError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def rate_product(
    session,
    user,
    order_id: int,
    product_id: int,
    rating: int,
    review_text: Optional[str] = None
) -> ProductReview:
    """
    Record a verified review for a product the user received.
    
    Raises:
        ValidationError: rating outside 1..5
        NotFoundError: order missing, not the user's, or product not in it
        BusinessLogicError: order not delivered, or product already rated
    """
    if rating is None or not 1 <= int(rating) <= 5:
        raise ValidationError('Rating must be between 1 and 5')
    
    order = session.get(Order, order_id)
    if not order or order.user_id != user.id:
        raise NotFoundError('Order not found')
    
    if order.status != OrderStatus.DELIVERED:
        raise BusinessLogicError('Only delivered orders can be rated')
    
    in_order = session.query(OrderItem.id).filter(
        OrderItem.order_id == order_id,
        OrderItem.product_id == product_id
    ).first()
    if not in_order:
        raise NotFoundError('Product not found in this order')
    
    already = session.query(ProductReview.id).filter_by(
        user_id=user.id, product_id=product_id, order_id=order_id
    ).first()
    if already:
        raise BusinessLogicError('You have already rated this product for this order')
    
    review = ProductReview(
        product_id=product_id,
        user_id=user.id,
        order_id=order_id,
        customer_name=user.name or (order.customer_info or {}).get('name'),
        rating=int(rating),
        review_text=review_text,
        verified=True
    )
    session.add(review)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise BusinessLogicError('You have already rated this product for this order') from e
    
    logger.info(f"Review {review.id}: user {user.id} rated product {product_id} ({rating}/5) from order {order_id}")
    return review
