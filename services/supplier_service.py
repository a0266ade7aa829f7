"""
Supplier CRUD over the `fornecedores` table.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.identity import Identity
from models.supplier import SupplierCreate, SupplierUpdate, SupplierResponse
from exceptions import SupplierNotFoundError, ValidationError, DatabaseError

logger = structlog.get_logger(__name__)

COLUMNS = "id,nome,ativo,created_at"


def _check_id(supplier_id: int) -> int:
    if not isinstance(supplier_id, int) or supplier_id <= 0:
        raise ValidationError("invalid id", code="INVALID_SUPPLIER_ID", details={"provided": supplier_id})
    return supplier_id


class SupplierService:
    """
    Supplier business logic.

    Deleting a supplier also deletes its SKU associations.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "fornecedores"
        self.links_table = "produto_fornecedor"

    def get_all(self) -> list[SupplierResponse]:
        """All suppliers ordered by name."""
        try:
            result = (
                self.db.table(self.table)
                .select(COLUMNS)
                .order("nome")
                .execute()
            )
            return [SupplierResponse(**row) for row in result.data or []]
        except Exception as e:
            logger.error("get_suppliers_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def create(self, data: SupplierCreate, identity: Identity) -> SupplierResponse:
        """
        Create a supplier.

        Raises:
            ValidationError: Empty name
        """
        nome = (data.nome or "").strip()
        if not nome:
            raise ValidationError("nome required", code="SUPPLIER_NAME_REQUIRED")

        logger.info("creating_supplier", nome=nome, user=identity.id)

        try:
            result = self.db.table(self.table).insert({"nome": nome}).execute()
            supplier = SupplierResponse(**result.data[0])
        except Exception as e:
            logger.error("create_supplier_failed", nome=nome, error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info("supplier_created", supplier_id=supplier.id)
        return supplier

    def update(self, supplier_id: int, data: SupplierUpdate, identity: Identity) -> SupplierResponse:
        """
        Rename and/or toggle a supplier.

        Raises:
            ValidationError: Invalid id or nothing to update
            SupplierNotFoundError: No supplier with that id
        """
        _check_id(supplier_id)

        payload = {}
        if data.nome is not None:
            payload["nome"] = data.nome.strip()
        if data.ativo is not None:
            payload["ativo"] = data.ativo

        if not payload:
            raise ValidationError("no fields", code="NO_FIELDS")
        if "nome" in payload and not payload["nome"]:
            raise ValidationError("nome required", code="SUPPLIER_NAME_REQUIRED")

        logger.info("updating_supplier", supplier_id=supplier_id, fields=list(payload), user=identity.id)

        try:
            result = (
                self.db.table(self.table)
                .update(payload)
                .eq("id", supplier_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_supplier_failed", supplier_id=supplier_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise SupplierNotFoundError(supplier_id)

        return SupplierResponse(**result.data[0])

    def delete(self, supplier_id: int, identity: Identity) -> bool:
        """
        Delete a supplier and its SKU associations.

        Associations are deleted first.
        """
        _check_id(supplier_id)
        logger.info("deleting_supplier", supplier_id=supplier_id, user=identity.id)

        try:
            self.db.table(self.links_table).delete().eq("fornecedor_id", supplier_id).execute()
            self.db.table(self.table).delete().eq("id", supplier_id).execute()
        except Exception as e:
            logger.error("delete_supplier_failed", supplier_id=supplier_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("supplier_deleted", supplier_id=supplier_id)
        return True


# Singleton instance for convenience
_supplier_service: Optional[SupplierService] = None


def get_supplier_service() -> SupplierService:
    """Get or create SupplierService instance."""
    global _supplier_service
    if _supplier_service is None:
        _supplier_service = SupplierService()
    return _supplier_service
