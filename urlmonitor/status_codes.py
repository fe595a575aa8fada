"""HTTP status code classification with localized outcome messages."""

# None marks codes that need no explanation for the user.
HTTP_MESSAGES: dict[int, str | None] = {
    # 1xx Informational
    100: None,
    101: None,
    # 2xx Success
    200: None,
    201: None,
    202: None,
    204: None,
    # 3xx Redirection
    300: "Multiple Choices",
    301: None,
    302: None,
    304: None,
    # 4xx Client Error
    400: "Requête incorrecte (Bad Request)",
    401: "Non autorisé (Unauthorized)",
    402: "Paiement requis (Payment Required)",
    403: "Accès interdit (Forbidden)",
    404: "Page non trouvée (Not Found)",
    405: "Méthode non autorisée (Method Not Allowed)",
    406: "Non acceptable (Not Acceptable)",
    408: "Timeout de la requête (Request Timeout)",
    409: "Conflit (Conflict)",
    410: "Ressource supprimée (Gone)",
    411: "Longueur requise (Length Required)",
    412: "Précondition échouée (Precondition Failed)",
    413: "Entité trop large (Payload Too Large)",
    414: "URI trop longue (URI Too Long)",
    415: "Type de média non supporté (Unsupported Media Type)",
    416: "Plage non satisfiable (Range Not Satisfiable)",
    417: "Attente échouée (Expectation Failed)",
    418: "Je suis une théière (I'm a teapot)",
    421: "Requête mal dirigée (Misdirected Request)",
    422: "Entité non traitable (Unprocessable Entity)",
    423: "Verrouillé (Locked)",
    424: "Dépendance échouée (Failed Dependency)",
    425: "Trop tôt (Too Early)",
    426: "Mise à niveau requise (Upgrade Required)",
    428: "Précondition requise (Precondition Required)",
    429: "Trop de requêtes (Too Many Requests)",
    431: "Champs d'en-tête trop grands (Request Header Fields Too Large)",
    451: "Indisponible pour des raisons légales (Unavailable For Legal Reasons)",
    # 5xx Server Error
    500: "Erreur interne du serveur (Internal Server Error)",
    501: "Non implémenté (Not Implemented)",
    502: "Mauvaise passerelle (Bad Gateway)",
    503: "Service indisponible (Service Unavailable)",
    504: "Timeout de la passerelle (Gateway Timeout)",
    505: "Version HTTP non supportée (HTTP Version Not Supported)",
    506: "Variant Also Negotiates",
    507: "Stockage insuffisant (Insufficient Storage)",
    508: "Boucle détectée (Loop Detected)",
    510: "Non étendu (Not Extended)",
    511: "Authentification réseau requise (Network Authentication Required)",
}

MIN_STATUS = 100
MAX_STATUS = 599


def is_success_status(status_code: int) -> bool:
    """Return True for informational, success and redirect codes (< 400)."""
    return MIN_STATUS <= status_code < 400


def get_status_message(status_code: int) -> str | None:
    """Return the descriptive message for a status code.

    Known benign codes return None, unknown codes a generic "Code HTTP" text.
    """
    if status_code in HTTP_MESSAGES:
        return HTTP_MESSAGES[status_code]
    if is_success_status(status_code) and status_code < 300:
        return None
    return f"Code HTTP {status_code}"


def classify(status_code: int) -> tuple[bool, str | None]:
    """Classify an HTTP status code.

    Args:
        status_code: HTTP status code in the 100-599 range.

    Returns:
        Tuple of (success, message). message is None for plain successes,
        informational for unusual redirects, and descriptive for failures.

    Raises:
        ValueError: If the status code is outside the 100-599 range.
    """
    if not (MIN_STATUS <= status_code <= MAX_STATUS):
        raise ValueError(f"HTTP status code out of range: {status_code}")

    return is_success_status(status_code), get_status_message(status_code)
