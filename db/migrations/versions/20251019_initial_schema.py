# NG-HEADER: Nombre de archivo: 20251019_initial_schema.py
# NG-HEADER: Ubicación: db/migrations/versions/20251019_initial_schema.py
# NG-HEADER: Descripción: Esquema inicial (usuarios, clientes, telas, colores, documentos, contadores, settings)
# NG-HEADER: Lineamientos: Ver AGENTS.md
from alembic import op
import sqlalchemy as sa

from db.migrations.util import has_table

# revision identifiers, used by Alembic.
revision = "20251019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_DOC_TYPES = "('QUOTE','RECEIPT','DELIVERY_NOTE')"
_DOC_STATUSES = "('DRAFT','SENT','APPROVED','COMPLETED','CANCELLED','EXPIRED')"
_PROD_STATUSES = "('PENDING','IN_PRODUCTION','READY','DELIVERED')"


def upgrade() -> None:
    bind = op.get_bind()

    if not has_table(bind, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(255), nullable=False, unique=True),
            sa.Column("name", sa.String(100), nullable=True),
            sa.Column("role", sa.String(20), nullable=False, server_default="ADMIN"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sqlite_autoincrement=True,
        )

    if not has_table(bind, "clients"):
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(200), nullable=False),
            sa.Column("type", sa.String(16), nullable=False, server_default="RETAIL"),
            sa.Column("dni", sa.String(32), nullable=True),
            sa.Column("phone", sa.String(50), nullable=False),
            sa.Column("email", sa.String(255), nullable=True),
            sa.Column("address", sa.String(300), nullable=True),
            sa.Column("city", sa.String(100), nullable=True),
            sa.Column("province", sa.String(100), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.CheckConstraint("type IN ('RETAIL','RESELLER')", name="ck_clients_type"),
            sqlite_autoincrement=True,
        )
        op.create_index("ix_clients_phone", "clients", ["phone"])

    if not has_table(bind, "fabric_types"):
        op.create_table(
            "fabric_types",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("code", sa.String(50), nullable=False),
            sa.Column("price_per_sqm", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("reseller_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("code", name="ux_fabric_types_code"),
            sqlite_autoincrement=True,
        )

    if not has_table(bind, "fabric_colors"):
        op.create_table(
            "fabric_colors",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "fabric_type_id",
                sa.Integer(),
                sa.ForeignKey("fabric_types.id", ondelete="CASCADE", name="fk_fabric_colors_fabric_type_id_fabric_types"),
                nullable=False,
            ),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("hex_code", sa.String(16), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.UniqueConstraint("fabric_type_id", "name", name="ux_fabric_colors_type_name"),
            sqlite_autoincrement=True,
        )

    if not has_table(bind, "system_colors"):
        op.create_table(
            "system_colors",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("hex_code", sa.String(16), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.UniqueConstraint("name", name="ux_system_colors_name"),
            sqlite_autoincrement=True,
        )

    if not has_table(bind, "documents"):
        op.create_table(
            "documents",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("type", sa.String(16), nullable=False),
            sa.Column("number", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),
            sa.Column("production_status", sa.String(16), nullable=False, server_default="PENDING"),
            sa.Column("date", sa.DateTime(), nullable=False),
            sa.Column("valid_until", sa.DateTime(), nullable=True),
            sa.Column("estimated_date", sa.DateTime(), nullable=True),
            sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("observations", sa.Text(), nullable=True),
            sa.Column(
                "client_id",
                sa.Integer(),
                sa.ForeignKey("clients.id", name="fk_documents_client_id_clients"),
                nullable=False,
            ),
            sa.Column(
                "user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", name="fk_documents_user_id_users"),
                nullable=False,
            ),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("type", "number", name="ux_documents_type_number"),
            sa.CheckConstraint(f"type IN {_DOC_TYPES}", name="ck_documents_type"),
            sa.CheckConstraint(f"status IN {_DOC_STATUSES}", name="ck_documents_status"),
            sa.CheckConstraint(
                f"production_status IN {_PROD_STATUSES}", name="ck_documents_production_status"
            ),
            sqlite_autoincrement=True,
        )

    if not has_table(bind, "document_items"):
        op.create_table(
            "document_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "document_id",
                sa.Integer(),
                sa.ForeignKey("documents.id", ondelete="CASCADE", name="fk_document_items_document_id_documents"),
                nullable=False,
            ),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("product_name", sa.String(200), nullable=False),
            sa.Column("width", sa.Integer(), nullable=False),
            sa.Column("height", sa.Integer(), nullable=False),
            sa.Column("price_per_sqm", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("square_meters", sa.Float(), nullable=False, server_default="0"),
            sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("location", sa.String(200), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
            sa.CheckConstraint(f"status IN {_PROD_STATUSES}", name="ck_document_items_status"),
            sqlite_autoincrement=True,
        )

    if not has_table(bind, "document_sequences"):
        op.create_table(
            "document_sequences",
            sa.Column("doc_type", sa.String(16), primary_key=True),
            sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )

    if not has_table(bind, "settings"):
        op.create_table(
            "settings",
            sa.Column("key", sa.String(64), primary_key=True),
            sa.Column("value", sa.JSON(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )


def downgrade() -> None:
    for table in (
        "settings",
        "document_sequences",
        "document_items",
        "documents",
        "system_colors",
        "fabric_colors",
        "fabric_types",
        "clients",
        "users",
    ):
        op.drop_table(table)
