from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("default_currency", models.CharField(default="USD", max_length=3)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="GLAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("account_type", models.CharField(choices=[("asset", "Asset"), ("liability", "Liability"), ("equity", "Equity"), ("revenue", "Revenue"), ("expense", "Expense")], max_length=20)),
                ("normal_balance", models.CharField(choices=[("debit", "Debit"), ("credit", "Credit")], max_length=6)),
                ("is_active", models.BooleanField(default=True)),
                ("allow_manual_entries", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounts", to="ledger_core.organization")),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="ledger_core.glaccount")),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["organization", "account_type"], name="glacct_org_type_idx"),
                    models.Index(fields=["organization", "parent"], name="glacct_org_parent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "code"), name="uq_org_account_code"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("account_type__in", ["asset", "expense"]), ("normal_balance", "debit")), models.Q(("account_type__in", ["liability", "equity", "revenue"]), ("normal_balance", "credit")), _connector="OR"),
                        name="glaccount_normal_balance_matches_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("payment_terms_days", models.IntegerField(default=30)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("default_ar_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="customers_default_ar", to="ledger_core.glaccount")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.organization")),
            ],
            options={
                "indexes": [models.Index(fields=["organization", "name"], name="customer_org_name_idx")],
                "constraints": [models.UniqueConstraint(fields=("organization", "name"), name="uq_org_customer_name")],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("payment_terms_days", models.IntegerField(default=30)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("default_ap_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="suppliers_default_ap", to="ledger_core.glaccount")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.organization")),
            ],
            options={
                "indexes": [models.Index(fields=["organization", "name"], name="supplier_org_name_idx")],
                "constraints": [models.UniqueConstraint(fields=("organization", "name"), name="uq_org_supplier_name")],
            },
        ),
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("bank_name", models.CharField(blank=True, default="", max_length=200)),
                ("account_number", models.CharField(blank=True, default="", max_length=50)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("opening_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("gl_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bank_accounts", to="ledger_core.glaccount")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.organization")),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("organization", "name"), name="uq_org_bankaccount_name")],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_type", models.CharField(choices=[("receivable", "Receivable"), ("payable", "Payable")], max_length=20)),
                ("party_type", models.CharField(choices=[("customer", "Customer"), ("supplier", "Supplier")], max_length=20)),
                ("invoice_number", models.CharField(max_length=50)),
                ("invoice_date", models.DateTimeField()),
                ("due_date", models.DateTimeField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("net_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("sent", "Sent"), ("approved", "Approved"), ("partial", "Partially paid"), ("paid", "Paid"), ("overdue", "Overdue"), ("cancelled", "Cancelled")], default="draft", max_length=20)),
                ("payment_status", models.CharField(choices=[("unpaid", "Unpaid"), ("partially_paid", "Partially paid"), ("paid", "Paid")], default="unpaid", max_length=20)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.customer")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.organization")),
                ("supplier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.supplier")),
            ],
            options={
                "ordering": ["-invoice_date", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "invoice_type", "status"], name="invoice_org_type_status_idx"),
                    models.Index(fields=["organization", "customer"], name="invoice_org_customer_idx"),
                    models.Index(fields=["organization", "supplier"], name="invoice_org_supplier_idx"),
                    models.Index(fields=["organization", "due_date"], name="invoice_org_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "invoice_type", "invoice_number"), name="uq_invoice_org_type_number"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("customer__isnull", False), ("party_type", "customer"), ("supplier__isnull", True)), models.Q(("customer__isnull", True), ("party_type", "supplier"), ("supplier__isnull", False)), _connector="OR"),
                        name="invoice_party_matches_type",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("discount_amount__gte", 0), ("total_amount__gte", 0)),
                        name="invoice_non_negative_amounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_number", models.PositiveIntegerField()),
                ("description", models.TextField(blank=True, default="")),
                ("quantity", models.DecimalField(decimal_places=4, default=Decimal("1"), max_digits=14)),
                ("unit_price", models.DecimalField(decimal_places=4, default=Decimal("0.00"), max_digits=18)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoice_lines", to="ledger_core.glaccount")),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.invoice")),
            ],
            options={
                "ordering": ["line_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("invoice", "line_number"), name="uq_invoiceline_number"),
                    models.CheckConstraint(condition=models.Q(("quantity__gte", 0), ("unit_price__gte", 0)), name="invl_non_negative_amounts"),
                    models.CheckConstraint(condition=models.Q(("tax_rate__gte", 0), ("tax_rate__lte", 100)), name="invl_tax_rate_range"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_type", models.CharField(choices=[("received", "Received"), ("sent", "Sent")], max_length=20)),
                ("party_type", models.CharField(choices=[("customer", "Customer"), ("supplier", "Supplier")], max_length=20)),
                ("payment_number", models.CharField(max_length=50)),
                ("payment_date", models.DateTimeField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("payment_method", models.CharField(choices=[("bank_transfer", "Bank Transfer"), ("check", "Check"), ("cash", "Cash"), ("card", "Card"), ("online", "Online")], max_length=20)),
                ("reference_number", models.CharField(blank=True, max_length=100, null=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("cleared", "Cleared"), ("bounced", "Bounced"), ("cancelled", "Cancelled")], default="pending", max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("bank_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.bankaccount")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.customer")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.organization")),
                ("supplier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.supplier")),
            ],
            options={
                "ordering": ["-payment_date", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "payment_type"], name="payment_org_type_idx"),
                    models.Index(fields=["organization", "payment_date"], name="payment_org_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "payment_number"), name="uq_payment_org_number"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="payment_amount_positive"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("customer__isnull", False), ("party_type", "customer"), ("supplier__isnull", True)), models.Q(("customer__isnull", True), ("party_type", "supplier"), ("supplier__isnull", False)), _connector="OR"),
                        name="payment_party_matches_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentAllocation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("allocated_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="allocations", to="ledger_core.invoice")),
                ("payment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="allocations", to="ledger_core.payment")),
            ],
            options={
                "indexes": [models.Index(fields=["invoice"], name="allocation_invoice_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("allocated_amount__gt", 0)), name="allocation_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_number", models.CharField(max_length=50)),
                ("entry_date", models.DateTimeField()),
                ("posting_date", models.DateTimeField(blank=True, null=True)),
                ("entry_type", models.CharField(choices=[("manual", "Manual"), ("automatic", "Automatic"), ("adjustment", "Adjustment")], default="manual", max_length=20)),
                ("reference_type", models.CharField(blank=True, choices=[("invoice", "Invoice"), ("payment", "Payment"), ("payroll", "Payroll"), ("journal_entry", "Journal entry")], max_length=20, null=True)),
                ("reference_id", models.BigIntegerField(blank=True, null=True)),
                ("description", models.TextField()),
                ("status", models.CharField(choices=[("draft", "Draft"), ("posted", "Posted")], default="draft", max_length=10)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.organization")),
                ("reversed_by", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="reverses", to="ledger_core.journalentry")),
            ],
            options={
                "ordering": ["-entry_date", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "entry_date"], name="je_org_date_idx"),
                    models.Index(fields=["organization", "status"], name="je_org_status_idx"),
                    models.Index(fields=["organization", "reference_type", "reference_id"], name="je_org_reference_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "entry_number"), name="uq_je_org_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntryLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_number", models.PositiveIntegerField()),
                ("debit_amount", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=19)),
                ("credit_amount", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=19)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="journal_lines", to="ledger_core.glaccount")),
                ("entry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.journalentry")),
            ],
            options={
                "ordering": ["line_number"],
                "indexes": [models.Index(fields=["account"], name="jel_account_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("entry", "line_number"), name="uq_jel_entry_line_number"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("debit_amount__gt", 0), ("credit_amount", 0)), models.Q(("credit_amount__gt", 0), ("debit_amount", 0)), _connector="OR"),
                        name="check_debit_or_credit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrganizationSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50)),
                ("last_value", models.PositiveBigIntegerField(default=0)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sequences", to="ledger_core.organization")),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("organization", "name"), name="uq_org_sequence_name")],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("organization", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.organization")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "created_at"], name="auditlog_org_created_idx"),
                    models.Index(fields=["organization", "object_type", "object_id"], name="auditlog_org_object_idx"),
                ],
            },
        ),
    ]
