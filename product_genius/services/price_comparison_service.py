from typing import List, Optional

from product_genius.models.product import Product

DEFAULT_CURRENCY = "USD"

MOCK_SUPPLIERS = [
    {"id": 1, "name": "TechSupply Co", "price": 299.0, "rating": 4.8, "delivery_time": "2-3 days"},
    {"id": 2, "name": "Global Vendors", "price": 285.0, "rating": 4.5, "delivery_time": "3-5 days"},
    {"id": 3, "name": "Quick Parts", "price": 310.0, "rating": 4.9, "delivery_time": "1-2 days"},
    {"id": 4, "name": "Bulk Suppliers", "price": 275.0, "rating": 4.3, "delivery_time": "5-7 days"},
    {"id": 5, "name": "Premium Parts", "price": 320.0, "rating": 4.7, "delivery_time": "2-4 days"},
]

MOCK_MARKETPLACES = [
    {"id": 1, "name": "Amazon", "price": 325.0, "url": "https://amazon.com", "rating": 4.6},
    {"id": 2, "name": "eBay", "price": 295.0, "url": "https://ebay.com", "rating": 4.4},
    {"id": 3, "name": "Shopify Store", "price": 315.0, "url": "https://example-store.com", "rating": 4.7},
    {"id": 4, "name": "Etsy", "price": 340.0, "url": "https://etsy.com", "rating": 4.8},
]


def _lowest(offers: List[dict]) -> Optional[dict]:
    priced = [offer for offer in offers if offer.get("price") is not None]
    return min(priced, key=lambda offer: offer["price"]) if priced else None


def supplier_offers(product: Product) -> List[dict]:
    """Offers from the product's linked suppliers, or the sample catalogue."""
    if product.suppliers:
        return [
            {
                "id": link.supplier_id,
                "name": link.supplier.name,
                "price": link.price,
                "currency": link.currency or product.currency or DEFAULT_CURRENCY,
                "url": link.url,
                "marketplace": link.marketplace or link.supplier.marketplace,
                "is_primary": link.is_primary,
                "rating": None,
                "delivery_time": None,
                "is_sample": False,
            }
            for link in sorted(product.suppliers, key=lambda l: (not l.is_primary, l.id))
        ]

    currency = product.currency or DEFAULT_CURRENCY
    return [{**offer, "currency": currency, "is_sample": True} for offer in MOCK_SUPPLIERS]


def marketplace_offers(product: Product) -> List[dict]:
    currency = product.currency or DEFAULT_CURRENCY
    return [{**offer, "currency": currency, "is_sample": True} for offer in MOCK_MARKETPLACES]


def build_price_comparison(product: Product) -> dict:
    suppliers = supplier_offers(product)
    marketplaces = marketplace_offers(product)

    lowest_supplier = _lowest(suppliers)
    lowest_marketplace = _lowest(marketplaces)
    potential_margin = None
    if lowest_supplier and lowest_marketplace:
        potential_margin = round(lowest_marketplace["price"] - lowest_supplier["price"], 2)

    return {
        "product_id": product.id,
        "suggested_price": product.suggested_price,
        "currency": product.currency or DEFAULT_CURRENCY,
        "suppliers": suppliers,
        "marketplaces": marketplaces,
        "summary": {
            "lowest_supplier_price": lowest_supplier["price"] if lowest_supplier else None,
            "lowest_supplier": lowest_supplier["name"] if lowest_supplier else None,
            "lowest_marketplace_price": lowest_marketplace["price"] if lowest_marketplace else None,
            "lowest_marketplace": lowest_marketplace["name"] if lowest_marketplace else None,
            "potential_margin": potential_margin,
        },
    }
