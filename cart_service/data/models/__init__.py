from cart_service.data.models.cart_line import CART_LINES, new_cart_line, line_from_document

__all__ = ["CART_LINES", "new_cart_line", "line_from_document"]
