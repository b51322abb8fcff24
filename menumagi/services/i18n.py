"""English and Hindi UI strings."""

from typing import Literal

from menumagi.services.order_status import OrderStatus

Language = Literal["en", "hi"]
SUPPORTED_LANGUAGES = ("en", "hi")

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        # Navigation
        "menu": "Menu",
        "cart": "Cart",
        "orders": "Orders",
        "dashboard": "Dashboard",
        "logout": "Logout",
        # Actions
        "order": "Order Now",
        "addToCart": "Add to Cart",
        "checkout": "Checkout",
        "placeOrder": "Place Order",
        "confirm": "Confirm",
        "cancel": "Cancel",
        "back": "Back",
        # Labels
        "table": "Table",
        "tableNumber": "Table Number",
        "total": "Total",
        "subtotal": "Subtotal",
        "tax": "Tax",
        "gst": "GST",
        "cgst": "CGST",
        "sgst": "SGST",
        "igst": "IGST",
        "quantity": "Quantity",
        # Status
        "waiting": "Waiting",
        "accepted": "Accepted",
        "preparing": "Preparing",
        "on-the-way": "On the Way",
        "completed": "Completed",
        "cancelled": "Cancelled",
        # Messages
        "orderPlaced": "Order placed successfully!",
        "orderCancelled": "Order cancelled",
        "itemAdded": "Item added to cart",
        "emptyCart": "Your cart is empty",
        "selectTable": "Please select a table",
        "thankYou": "Thank you for your order!",
        "trackOrder": "Track Order",
        "orderStatus": "Order Status",
    },
    "hi": {
        "menu": "मेनू",
        "cart": "कार्ट",
        "orders": "ऑर्डर",
        "dashboard": "डैशबोर्ड",
        "logout": "लॉगआउट",
        "order": "अभी ऑर्डर करें",
        "addToCart": "कार्ट में डालें",
        "checkout": "चेकआउट",
        "placeOrder": "ऑर्डर करें",
        "confirm": "पुष्टि करें",
        "cancel": "रद्द करें",
        "back": "वापस",
        "table": "टेबल",
        "tableNumber": "टेबल नंबर",
        "total": "कुल",
        "subtotal": "उप-योग",
        "tax": "कर",
        "gst": "जीएसटी",
        "cgst": "सीजीएसटी",
        "sgst": "एसजीएसटी",
        "igst": "आईजीएसटी",
        "quantity": "मात्रा",
        "waiting": "प्रतीक्षा में",
        "accepted": "स्वीकार किया गया",
        "preparing": "तैयार हो रहा है",
        "on-the-way": "रास्ते में",
        "completed": "पूरा हुआ",
        "cancelled": "रद्द",
        "orderPlaced": "ऑर्डर सफलतापूर्वक दिया गया!",
        "orderCancelled": "ऑर्डर रद्द कर दिया गया",
        "itemAdded": "आइटम कार्ट में जोड़ा गया",
        "emptyCart": "आपका कार्ट खाली है",
        "selectTable": "कृपया एक टेबल चुनें",
        "thankYou": "आपके ऑर्डर के लिए धन्यवाद!",
        "trackOrder": "ऑर्डर ट्रैक करें",
        "orderStatus": "ऑर्डर की स्थिति",
    },
}


def translate(key: str, language: str = "en") -> str:
    """Look up ``key``, falling back to English and then the key itself."""
    table = TRANSLATIONS.get(language, TRANSLATIONS["en"])
    return table.get(key) or TRANSLATIONS["en"].get(key) or key


def status_label(status: OrderStatus, language: str = "en") -> str:
    return translate(OrderStatus(status).value, language)
