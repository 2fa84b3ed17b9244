# src/siteaudit/constants.py
"""Centralized constants and signature tables for the site auditor.

Detection registries are plain data: adding a platform or an email
integration means adding a row here, not new control flow. For
user-configurable values, see config.py and AuditSettings.
"""

# =============================================================================
# Browser Constants
# =============================================================================

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DESKTOP_VIEWPORT = {"width": 1920, "height": 1080}

# iPhone SE / 8 class device
MOBILE_VIEWPORT = {"width": 375, "height": 667}

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

# Playwright wait strategy for every navigation
NAVIGATION_WAIT_UNTIL = "networkidle"


# =============================================================================
# Capture Slot Names
# =============================================================================

HOMEPAGE_DESKTOP_SLOT = "homepage_desktop"
HOMEPAGE_MOBILE_SLOT = "homepage_mobile"
PRODUCT_SLOT_TEMPLATE = "product_{index}_desktop"


# =============================================================================
# Platform & Commerce Detection
# =============================================================================

# (label, kind, needle). Kinds:
#   script_src      - any <script src> contains needle
#   meta_generator  - <meta name="generator"> content contains needle
#   global          - window[needle] is defined
#   link_href       - any <link href> contains needle
PLATFORM_SIGNATURES = [
    ("shopify_script", "script_src", "shopify"),
    ("shopify_generator", "meta_generator", "Shopify"),
    ("shopify_global", "global", "Shopify"),
    ("shopify_theme", "link_href", "shopify"),
]

ADD_TO_CART_PHRASE = "add to cart"
ADD_TO_CART_SELECTOR = '[class*="add-to-cart"], [id*="add-to-cart"]'
PRICE_SELECTOR = '[class*="price"], [id*="price"]'
SHOP_KEYWORDS = ["product", "shop"]

# Substrings that mark an anchor as a product page candidate
PRODUCT_PATH_PATTERNS = ["/products/", "/product/", "/shop/", "/store/"]


# =============================================================================
# Email Marketing Platforms
# =============================================================================

# name -> globals on window, substrings of script src/inline text.
# Evaluated in table order; the first match is the primary platform.
EMAIL_PLATFORMS = [
    {
        "name": "Klaviyo",
        "globals": ["klaviyo", "_klOnsite", "KlaviyoSubscribe"],
        "scripts": ["klaviyo.com"],
    },
    {
        "name": "Mailchimp",
        "globals": ["mc4wp"],
        "scripts": ["chimpstatic.com", "list-manage.com"],
    },
    {
        "name": "Privy",
        "globals": ["Privy", "_privy"],
        "scripts": ["privy.com"],
    },
    {
        "name": "Omnisend",
        "globals": ["omnisend", "_omnisend"],
        "scripts": ["omnisnippet", "omnisend.com"],
    },
    {
        "name": "Justuno",
        "globals": ["ju_num", "juapp"],
        "scripts": ["justuno.com"],
    },
    {
        "name": "OptinMonster",
        "globals": ["OptinMonsterApp", "om_loaded"],
        "scripts": ["optinmonster", "omappapi.com"],
    },
    {
        "name": "Sumo",
        "globals": ["Sumo"],
        "scripts": ["sumo.com", "sumome.com"],
    },
    {
        "name": "Wisepops",
        "globals": ["wisepops"],
        "scripts": ["wisepops.com"],
    },
    {
        "name": "Attentive",
        "globals": ["__attentive"],
        "scripts": ["attn.tv", "attentivemobile.com"],
    },
    {
        "name": "HubSpot",
        "globals": ["_hsq", "hbspt"],
        "scripts": ["js.hs-scripts.com", "hsforms.net"],
    },
    {
        "name": "ConvertKit",
        "globals": [],
        "scripts": ["convertkit.com", "ck.page"],
    },
    {
        "name": "Drip",
        "globals": ["_dcq", "_dcs"],
        "scripts": ["getdrip.com"],
    },
]


# =============================================================================
# Popup Detection
# =============================================================================

POPUP_SELECTORS = [
    '[class*="popup"]',
    '[id*="popup"]',
    '[class*="modal"]',
    '[id*="modal"]',
    '[class*="overlay"]',
    '[class*="lightbox"]',
    '[class*="newsletter"]',
    '[id*="newsletter"]',
    '[class*="subscribe"]',
    '[class*="signup"]',
    '[class*="klaviyo-form"]',
    '[class*="needsclick"]',
    '[role="dialog"]',
    '[aria-modal="true"]',
    'dialog[open]',
]

# Lowercase substrings that indicate subscription intent
SUBSCRIPTION_KEYWORDS = ["subscribe", "newsletter", "email", "discount", "offer", "save"]

# Regexes (lowercase text) that indicate a discount or incentive
DISCOUNT_PATTERNS = [
    r"\d+\s*%\s*off",
    r"discount",
    r"offer",
    r"coupon",
    r"promo",
    r"\bsave\b",
    r"free shipping",
]

# Overlays with this much text or less are treated as decoration
MIN_POPUP_TEXT_LENGTH = 10

# Length of the text excerpt stored per popup candidate
POPUP_TEXT_PREVIEW_LENGTH = 100
