"""Application-wide constants.

This module centralizes all magic numbers, URLs and reply texts so the
webhook, composer and outbound client share a single source of truth.
"""

# =============================================================================
# Facebook API
# =============================================================================

# Facebook Graph API version used by the Send API
FACEBOOK_GRAPH_API_VERSION = "v2.6"

# Base URL of the Graph API
FACEBOOK_GRAPH_API_URL = "https://graph.facebook.com"

# Signature header sent by Facebook on every webhook POST
FACEBOOK_SIGNATURE_HEADER = "x-hub-signature"

# Messenger limits for button templates
MAX_TEMPLATE_BUTTONS = 3
MAX_BUTTON_TITLE_CHARS = 20

# =============================================================================
# HTTP Timeout Configuration
# =============================================================================

# Timeout for Facebook Graph API calls (seconds)
FACEBOOK_API_TIMEOUT_SECONDS = 10.0

# Timeout for search backend queries (seconds)
SEARCH_TIMEOUT_SECONDS = 20.0

# =============================================================================
# Search backend (Wikidata)
# =============================================================================

WIKIDATA_SPARQL_URL = "https://query.wikidata.org/sparql"

# Public page of a Wikidata entity, used as reference link
WIKIDATA_ENTITY_PAGE_URL = "http://www.wikidata.org/wiki/{entity_id}"

# Language used for labels and entity search
DEFAULT_SEARCH_LANGUAGE = "nl"

# Number of candidate rows fetched before picking one at random
SEARCH_CANDIDATE_LIMIT = 100

USER_AGENT = "messenger-painting-bot/0.1 (https://github.com/)"

# =============================================================================
# Delayed follow-up messages (seconds)
# =============================================================================

REFERENCE_LINK_DELAY_SECONDS = 3.0
SOCIAL_PROOF_DELAY_SECONDS = 4.0
COLLECTION_FOLLOWUP_DELAY_SECONDS = 5.0

# Inclusive ranges for the randomized social-proof numbers
SOCIAL_PROOF_VIEWERS_RANGE = (8, 50)
SOCIAL_PROOF_WATCHING_RANGE = (2, 4)

# =============================================================================
# Reply texts
# =============================================================================

SEARCHING_TEXT = "Ik ben nu aan het zoeken, een momentje..."
FETCHING_PAINTING_TEXT = "Ik ben nu een schilderij aan het ophalen..."
NOT_UNDERSTOOD_TEXT = "Sorry, dit snap ik even niet."
SEARCH_FAILED_TEXT = "Er ging iets mis bij het zoeken, probeer het later nog eens."
QUICK_REPLY_TEXT = "Quick reply tapped"
AUTHENTICATION_TEXT = "Authentication successful"
CAPTION_TEMPLATE = "Je gaat zo zien: {label}, {description}"
SOCIAL_PROOF_TEMPLATE = (
    "{viewers} mensen zagen deze afbeelding ook, "
    "{watching} mensen kijken op dit moment"
)
POSTBACK_ERROR_TEMPLATE = "Er ging iets mis: {error}"
COLLECTION_TEMPLATE = "Dit kun je trouwens zien in de collectie van {collection}"
MORE_WORK_TEXT = "Nog een werk van deze schilder?"
MORE_WORK_BUTTON_TITLE = "Ja, leuk!"
LINK_TEXT = "Meer weten over dit werk?"
LINK_BUTTON_TITLE = "Bekijk de bron"

# Message-path keywords
MONUMENTS_KEYWORD = "utrecht"
SURPRISE_KEYWORD = "surprise"
DATE_RANGE_SEPARATOR = "-"

# =============================================================================
# Application lifecycle
# =============================================================================

# Wait this long for in-flight sends and searches on shutdown (seconds)
GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS = 30.0
