"""
Magazord ERP integration.

Builds authenticated requests against the Magazord REST API and normalizes
its responses into catalog, inventory and price records. Every non-2xx
response becomes an UpstreamError; nothing here retries.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

import requests
import structlog

from config.settings import settings
from exceptions import ConfigurationError, InvalidSKUError, UpstreamError, ValidationError
from models.inventory import InventoryLevel

logger = structlog.get_logger(__name__)


# ===================
# ENDPOINTS
# ===================

CATALOG_PATH = "/api/v2/site/frontend/produto/{loja_id}"
INVENTORY_LIST_PATH = "/api/v1/listEstoque"
INVENTORY_MOVEMENT_PATH = "/api/v1/estoque"
PRICE_LIST_PATH = "/api/v1/listPreco"
PRICE_SUBMIT_PATH = "/api/v1/preco"

LIMIT_MAX = 100
REQUEST_TIMEOUT_SECONDS = 30

# tipo_registro of derivation (SKU-level) records; parents use other values
DERIVATION_RECORD_TYPE = 2

# Movement encoding
STOCK_TYPE_PHYSICAL = 1
OPERATION_ADD = 1
OPERATION_REDUCE = 2
ORIGIN_MANUAL = 1
ORIGIN_COST_BEARING = 2

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


# ===================
# FIELD CANDIDATES
# ===================
# Upstream renamed several fields over time. First non-null key wins.

DERIVATION_ID_KEYS = ("derivacao_id", "id_derivacao", "id")
PARENT_CODE_KEYS = ("codigo_pai", "codigoPai", "produto_codigo_pai")
INVENTORY_SKU_KEYS = ("produto", "codigo", "sku")
SELL_PRICE_KEYS = ("precoVenda", "preco_venda")


def first_present(item: dict, keys: tuple[str, ...], default: Any = None) -> Any:
    """Return the value of the first key in `keys` that is present and not None."""
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return default


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_text(value: Any) -> str:
    return "" if value is None else str(value)


def _id_param(value: Any) -> Any:
    """Numeric ids go upstream as ints, anything else untouched."""
    text = str(value).strip()
    return int(text) if text.isdigit() else text


# ===================
# PURE HELPERS
# ===================

def clamp_limit(limit: Any) -> int:
    """Effective page size: min(100, max(1, limit))."""
    return min(LIMIT_MAX, max(1, int(limit)))


def clamp_page(page: Any) -> int:
    """Effective page number: max(1, page)."""
    return max(1, int(page))


def build_image_url(
    media_path: Optional[str],
    file_name: Optional[str],
    cdn_base: Optional[str] = None
) -> str:
    """
    Build the public URL of a product image.

    Absolute media paths are joined with the file name directly; relative
    paths are joined onto the CDN base. Missing inputs give "".

    Args:
        media_path: Media folder from upstream (absolute URL or relative path)
        file_name: Media file name
        cdn_base: CDN base URL (defaults to MAGAZORD_CDN_BASE_URL)

    Returns:
        Image URL, or empty string when it cannot be derived
    """
    path = str(media_path or "").strip()
    arquivo = str(file_name or "").strip()
    if not path or not arquivo:
        return ""

    if _ABSOLUTE_URL.match(path):
        return f"{path.rstrip('/')}/{arquivo}"

    base = settings.magazord_cdn_base_url if cdn_base is None else cdn_base
    base = (base or "").strip().rstrip("/")
    if not base:
        return ""

    return f"{base}/{path.strip('/')}/{arquivo}"


def is_derivation(item: dict) -> bool:
    """Only derivation records are sellable SKUs."""
    return item.get("tipo_registro") == DERIVATION_RECORD_TYPE


def compose_derivation_name(parent_name: Optional[str], derivation_name: Optional[str]) -> str:
    """'<parent> - <derivation>' when both are present, else the parent name."""
    if parent_name and derivation_name:
        return f"{parent_name} - {derivation_name}"
    return parent_name or ""


def map_catalog_item(item: dict, cdn_base: Optional[str] = None) -> dict:
    """
    Map one upstream derivation record to a `catalogo` row.

    Args:
        item: Raw record from the catalog listing
        cdn_base: CDN base for relative media paths

    Returns:
        dict with the CatalogEntry columns
    """
    midias = item.get("midias") or []
    midia = midias[0] if midias else None
    url_imagem = (
        build_image_url(midia.get("path"), midia.get("arquivo_nome"), cdn_base)
        if isinstance(midia, dict) else ""
    )

    return {
        "sku": str(item.get("codigo") or "").strip(),
        "nome_derivacao": compose_derivation_name(_to_text(item.get("nome")), _to_text(item.get("derivacao_nome"))),
        "codigo_pai": str(first_present(item, PARENT_CODE_KEYS, "")),
        "id_derivacao": _to_int(first_present(item, DERIVATION_ID_KEYS)),
        "url_imagem": url_imagem,
        "ativo": item.get("ativo") is not False,
        "preco": _to_float(item["valor"], None) if item.get("valor") is not None else None,
    }


def map_inventory_row(row: dict) -> InventoryLevel:
    """Map one listEstoque row to InventoryLevel."""
    return InventoryLevel(
        sku=str(first_present(row, INVENTORY_SKU_KEYS, "")),
        estoque_atual=_to_float(row.get("quantidadeDisponivelVenda")),
        estoque_reservado=_to_float(row.get("quantidadeReservadoSaida")),
        custo_medio=_to_float(row.get("custoMedio")),
    )


def _format_quantity(quantity: float) -> Any:
    return int(quantity) if float(quantity).is_integer() else quantity


def build_movement_payload(
    sku: str,
    deposito: Any,
    quantity: float,
    motivo: str,
    actor: str,
    custo_base: Optional[float] = None
) -> dict:
    """
    Build the body of an inventory movement.

    The sign of `quantity` becomes tipoOperacao (reduce when negative).
    valorMovimento = |quantity| * custo_base rounded to 2 decimals, only
    for positive movements with a positive base cost; those are sent as
    cost-bearing, everything else as a manual entry.

    Raises:
        InvalidSKUError: Empty SKU
        ValidationError: Zero quantity
    """
    sku = (sku or "").strip()
    if not sku:
        raise InvalidSKUError(sku)
    if not quantity:
        raise ValidationError(
            "quantidade must be non-zero",
            code="INVALID_QUANTITY",
            details={"provided": quantity}
        )

    reduce = quantity < 0
    absolute = abs(quantity)
    sign = "-" if reduce else "+"
    observacao = f"{sign}{_format_quantity(absolute)} | {motivo or 'AJUSTE'} | {actor}"

    valor_movimento = None
    if not reduce and custo_base is not None and custo_base > 0:
        valor_movimento = float(
            (Decimal(str(absolute)) * Decimal(str(custo_base))).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        )

    payload = {
        "produto": sku,
        "deposito": _id_param(deposito),
        "quantidade": _format_quantity(absolute),
        "tipo": STOCK_TYPE_PHYSICAL,
        "tipoOperacao": OPERATION_REDUCE if reduce else OPERATION_ADD,
        "origemMovimento": ORIGIN_COST_BEARING if valor_movimento is not None else ORIGIN_MANUAL,
        "observacao": observacao,
    }
    if valor_movimento is not None:
        payload["valorMovimento"] = valor_movimento
    return payload


# ===================
# CLIENT
# ===================

@dataclass
class CatalogPage:
    """Raw catalog listing page plus its envelope."""
    page: int
    limit: int
    items: list[dict] = field(default_factory=list)
    total: int = 0
    has_more: bool = False


class MagazordClient:
    """
    Thin client over the Magazord REST API.

    Configuration defaults to the application settings; every operation
    checks what it needs before any network call.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        secret: Optional[str] = None,
        loja_id: Optional[int] = None,
        cdn_base_url: Optional[str] = None,
        deposito_id: Optional[str] = None,
        tabela_preco_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (settings.magazord_base_url if base_url is None else base_url).rstrip("/")
        self.token = settings.magazord_token if token is None else token
        self.secret = settings.magazord_secret if secret is None else secret
        self.loja_id = settings.magazord_loja_id if loja_id is None else loja_id
        self.cdn_base_url = settings.magazord_cdn_base_url if cdn_base_url is None else cdn_base_url
        self.deposito_id = settings.magazord_deposito_id if deposito_id is None else deposito_id
        self.tabela_preco_id = settings.magazord_tabela_preco_id if tabela_preco_id is None else tabela_preco_id
        self.session = session or requests.Session()

    # ===================
    # PLUMBING
    # ===================

    def require_config(self, operation: str, **extra: Any) -> None:
        """
        Fail fast when settings needed by `operation` are missing.

        Args:
            operation: Operation name for the error details
            **extra: Additional ENV_NAME=value pairs the operation needs

        Raises:
            ConfigurationError: Listing every missing setting
        """
        required = {
            "MAGAZORD_BASE_URL": self.base_url,
            "MAGAZORD_TOKEN": self.token,
            "MAGAZORD_SECRET": self.secret,
            **extra,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            logger.error("magazord_not_configured", operation=operation, missing=missing)
            raise ConfigurationError(missing, operation=operation)

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("magazord_request", operation=operation, method=method, path=path)

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                auth=(self.token, self.secret),
                headers={"Accept": "application/json"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            logger.error("magazord_request_failed", operation=operation, error=str(e))
            raise UpstreamError(502, f"Magazord request failed: {e}", operation) from e

        if not response.ok:
            logger.warning(
                "magazord_error_response",
                operation=operation,
                status_code=response.status_code
            )
            raise UpstreamError(response.status_code, response.text, operation)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # ===================
    # CATALOG
    # ===================

    def list_catalog_page(self, page: int = 1, limit: int = LIMIT_MAX) -> CatalogPage:
        """
        Fetch one page of the product-derivation listing.

        Args:
            page: Page number, clamped to >= 1
            limit: Page size, clamped to [1, 100]

        Returns:
            CatalogPage with the raw items and the envelope's total/has_more
        """
        self.require_config("list_catalog_page")
        page = clamp_page(page)
        limit = clamp_limit(limit)

        body = self._request(
            "GET",
            CATALOG_PATH.format(loja_id=self.loja_id),
            "list_catalog_page",
            params={"limit": limit, "page": page},
        )

        data = body.get("data") if isinstance(body, dict) else None
        data = data if isinstance(data, dict) else {}
        items = data.get("items")
        items = items if isinstance(items, list) else []

        return CatalogPage(
            page=page,
            limit=limit,
            items=items,
            total=int(_to_float(data.get("total"))),
            has_more=bool(data.get("has_more")),
        )

    def map_derivations(self, items: list[dict]) -> list[dict]:
        """Keep derivation records and map them to `catalogo` rows."""
        return [
            map_catalog_item(item, self.cdn_base_url)
            for item in items
            if isinstance(item, dict) and is_derivation(item)
        ]

    # ===================
    # INVENTORY
    # ===================

    def fetch_inventory(
        self,
        sku: str,
        limit: int = LIMIT_MAX,
        deposito_id: Optional[str] = None
    ) -> list[InventoryLevel]:
        """
        Fetch live inventory for a SKU.

        An empty list means upstream has no data for the SKU; that is
        not an error.
        """
        sku = (sku or "").strip()
        if not sku:
            raise InvalidSKUError(sku)
        self.require_config("fetch_inventory")

        params = {"limit": clamp_limit(limit), "offset": 0, "produto": sku}
        deposito = deposito_id or self.deposito_id
        if deposito:
            params["deposito"] = deposito

        body = self._request("GET", INVENTORY_LIST_PATH, "fetch_inventory", params=params)
        rows = body.get("data") if isinstance(body, dict) else None
        rows = rows if isinstance(rows, list) else []

        return [map_inventory_row(row) for row in rows if isinstance(row, dict)]

    def post_inventory_movement(
        self,
        sku: str,
        quantity: float,
        actor: str,
        motivo: str = "AJUSTE",
        deposito_id: Optional[str] = None,
        custo_base: Optional[float] = None,
    ) -> Any:
        """
        Submit an inventory movement.

        Args:
            sku: SKU to move
            quantity: Signed quantity (negative reduces stock)
            actor: Acting user, written into the audit observation
            motivo: Reason code
            deposito_id: Warehouse (defaults to MAGAZORD_DEPOSITO_ID)
            custo_base: Unit cost for positive movements

        Returns:
            Upstream response payload, verbatim
        """
        deposito = deposito_id or self.deposito_id
        payload = build_movement_payload(sku, deposito, quantity, motivo, actor, custo_base)
        self.require_config("post_inventory_movement", MAGAZORD_DEPOSITO_ID=deposito)

        logger.info(
            "posting_inventory_movement",
            sku=payload["produto"],
            tipo_operacao=payload["tipoOperacao"],
            quantidade=payload["quantidade"]
        )
        return self._request("POST", INVENTORY_MOVEMENT_PATH, "post_inventory_movement", json=payload)

    # ===================
    # PRICES
    # ===================

    def fetch_price(self, sku: str, tabela_preco_id: Optional[str] = None) -> Optional[float]:
        """Current sell price of a SKU on a price list, or None if upstream has no row."""
        sku = (sku or "").strip()
        if not sku:
            raise InvalidSKUError(sku)
        tabela = tabela_preco_id or self.tabela_preco_id
        self.require_config("fetch_price", MAGAZORD_TABELA_PRECO_ID=tabela)

        body = self._request(
            "GET",
            PRICE_LIST_PATH,
            "fetch_price",
            params={"tabelaPreco": tabela, "produto": sku, "limit": 1, "offset": 0},
        )
        rows = body.get("data") if isinstance(body, dict) else None
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return None

        price = first_present(rows[0], SELL_PRICE_KEYS)
        return _to_float(price, None) if price is not None else None

    def post_price(self, sku: str, price: float, tabela_preco_id: Optional[str] = None) -> Any:
        """Set the sell price of a SKU. Upstream answers with a bare acknowledgement."""
        sku = (sku or "").strip()
        if not sku:
            raise InvalidSKUError(sku)
        if price is None or price <= 0:
            raise ValidationError(
                "preco must be greater than zero",
                code="INVALID_PRICE",
                details={"provided": price}
            )
        tabela = tabela_preco_id or self.tabela_preco_id
        self.require_config("post_price", MAGAZORD_TABELA_PRECO_ID=tabela)

        payload = [{"produto": sku, "tabelaPreco": _id_param(tabela), "precoVenda": price}]
        logger.info("posting_price", sku=sku, tabela_preco=tabela)
        return self._request("POST", PRICE_SUBMIT_PATH, "post_price", json=payload)


# Singleton instance for convenience
_magazord_client: Optional[MagazordClient] = None


def get_magazord_client() -> MagazordClient:
    """Get or create MagazordClient instance."""
    global _magazord_client
    if _magazord_client is None:
        _magazord_client = MagazordClient()
    return _magazord_client
