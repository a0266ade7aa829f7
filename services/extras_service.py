"""
Supplier extras: locally owned metadata per SKU.

Tables:
    produto_extra       sku, cod_fornecedor, fora_de_linha, observacoes
    produto_fornecedor  sku, fornecedor_id
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.identity import Identity
from models.supplier import SupplierExtraUpdate, SupplierExtraResponse
from exceptions import InvalidSKUError, DatabaseError

logger = structlog.get_logger(__name__)


class ExtrasService:
    """Read and write supplier extras. The association set is always replaced whole."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "produto_extra"
        self.links_table = "produto_fornecedor"
        self.suppliers_table = "fornecedores"

    def get_for_skus(self, skus: list[str]) -> dict[str, SupplierExtraResponse]:
        """
        Extras for a set of SKUs, with supplier names resolved.

        SKUs that only have associations (no produto_extra row) are included.
        Associations pointing at a missing supplier are skipped.

        Returns:
            dict mapping sku -> SupplierExtraResponse
        """
        skus = [s.strip() for s in skus if s and s.strip()]
        if not skus:
            return {}

        logger.debug("getting_extras", count=len(skus))

        try:
            extras = (
                self.db.table(self.table)
                .select("sku,cod_fornecedor,fora_de_linha,observacoes")
                .in_("sku", skus)
                .execute()
            )
            links = (
                self.db.table(self.links_table)
                .select("sku,fornecedor_id")
                .in_("sku", skus)
                .execute()
            )

            supplier_ids = sorted({row["fornecedor_id"] for row in links.data})
            names: dict[int, str] = {}
            if supplier_ids:
                suppliers = (
                    self.db.table(self.suppliers_table)
                    .select("id,nome")
                    .in_("id", supplier_ids)
                    .execute()
                )
                names = {row["id"]: row["nome"] for row in suppliers.data}

        except Exception as e:
            logger.error("get_extras_failed", count=len(skus), error=str(e))
            raise DatabaseError("select", str(e))

        names_by_sku: dict[str, list[str]] = {}
        for link in links.data:
            nome = names.get(link["fornecedor_id"])
            if not nome:
                continue
            names_by_sku.setdefault(link["sku"], []).append(nome)

        out: dict[str, SupplierExtraResponse] = {}
        for row in extras.data:
            out[row["sku"]] = SupplierExtraResponse(
                sku=row["sku"],
                cod_fornecedor=row.get("cod_fornecedor") or "",
                fora_de_linha=bool(row.get("fora_de_linha")),
                observacoes=row.get("observacoes") or "",
                fornecedores=names_by_sku.get(row["sku"], []),
            )
        for sku, supplier_names in names_by_sku.items():
            if sku not in out:
                out[sku] = SupplierExtraResponse(sku=sku, fornecedores=supplier_names)

        return out

    def save(self, sku: str, data: SupplierExtraUpdate, identity: Identity) -> SupplierExtraResponse:
        """
        Upsert the extras of a SKU and replace its supplier set.

        Steps: upsert produto_extra, delete every produto_fornecedor row of
        the SKU, insert the new set.

        Raises:
            InvalidSKUError: Empty SKU
            DatabaseError: Any step failed (earlier steps are not undone)
        """
        sku = (sku or "").strip()
        if not sku:
            raise InvalidSKUError(sku)

        logger.info(
            "saving_extras",
            sku=sku,
            suppliers=len(data.fornecedores),
            user=identity.id
        )

        row = {
            "sku": sku,
            "cod_fornecedor": data.cod_fornecedor.strip(),
            "fora_de_linha": data.fora_de_linha,
            "observacoes": data.observacoes.strip(),
        }

        try:
            self.db.table(self.table).upsert(row, on_conflict="sku").execute()
        except Exception as e:
            logger.error("upsert_extras_failed", sku=sku, error=str(e))
            raise DatabaseError("upsert", str(e))

        try:
            self.db.table(self.links_table).delete().eq("sku", sku).execute()
        except Exception as e:
            logger.error("delete_supplier_links_failed", sku=sku, error=str(e))
            raise DatabaseError("delete", str(e))

        if data.fornecedores:
            links = [{"sku": sku, "fornecedor_id": supplier_id} for supplier_id in data.fornecedores]
            try:
                self.db.table(self.links_table).insert(links).execute()
            except Exception as e:
                logger.error("insert_supplier_links_failed", sku=sku, error=str(e))
                raise DatabaseError("insert", str(e))

        logger.info("extras_saved", sku=sku)
        return self.get_for_skus([sku]).get(sku) or SupplierExtraResponse(**row)


# Singleton instance for convenience
_extras_service: Optional[ExtrasService] = None


def get_extras_service() -> ExtrasService:
    """Get or create ExtrasService instance."""
    global _extras_service
    if _extras_service is None:
        _extras_service = ExtrasService()
    return _extras_service
