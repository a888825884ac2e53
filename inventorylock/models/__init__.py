from inventorylock.models.product import PAYLOAD_FIELDS, Product

__all__ = ["PAYLOAD_FIELDS", "Product"]
