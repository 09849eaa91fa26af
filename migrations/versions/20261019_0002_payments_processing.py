# migrations/versions/20261019_0002_payments_processing.py
# Payment methods, transaction details, processing calculations, group contact numbers
from alembic import op

# Revision identifiers, used by Alembic.
revision = "20261019_0002_payments_processing"
down_revision = "20261019_0001_initial"
branch_labels = None
depends_on = None

def upgrade():
    # Payment methods
    op.execute("""
    CREATE TABLE IF NOT EXISTS `payment_methods` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `name` VARCHAR(100) NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      UNIQUE KEY `ux_payment_methods_name` (`name`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Transaction details: a payment converted at a recorded dollar rate
    op.execute("""
    CREATE TABLE IF NOT EXISTS `transaction_details` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `transaction_date` DATE NOT NULL,
      `payment_method_id` INT NOT NULL,
      `amount` DECIMAL(14,2) NOT NULL,
      `dollar_rate_id` INT NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      KEY `ix_transaction_details_date` (`transaction_date`),
      CONSTRAINT `fk_transaction_payment_method` FOREIGN KEY (`payment_method_id`)
        REFERENCES `payment_methods` (`id`) ON DELETE RESTRICT,
      CONSTRAINT `fk_transaction_dollar_rate` FOREIGN KEY (`dollar_rate_id`)
        REFERENCES `dollar_rate` (`id`) ON DELETE RESTRICT
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Processing calculations (per client and per group), same shape
    for table in ("processing_calculation", "processing_group_calculation"):
        op.execute(f"""
        CREATE TABLE IF NOT EXISTS `{table}` (
          `id` INT NOT NULL AUTO_INCREMENT,
          `processing_percent` DECIMAL(5,2) NOT NULL,
          `processing_group_id` INT NOT NULL,
          `client_id` INT NOT NULL,
          `processing_total` DECIMAL(14,2) NULL,
          `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
          PRIMARY KEY (`id`),
          KEY `ix_{table}_group` (`processing_group_id`),
          CONSTRAINT `fk_{table}_group` FOREIGN KEY (`processing_group_id`)
            REFERENCES `groups` (`id`) ON DELETE CASCADE,
          CONSTRAINT `fk_{table}_client` FOREIGN KEY (`client_id`)
            REFERENCES `users` (`id`) ON DELETE CASCADE
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
        """)

    # Group contact numbers
    for table in ("group_admin_numbers", "group_employee_numbers"):
        op.execute(f"""
        CREATE TABLE IF NOT EXISTS `{table}` (
          `id` INT NOT NULL AUTO_INCREMENT,
          `group_id` INT NOT NULL,
          `number` VARCHAR(20) NOT NULL,
          `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
          PRIMARY KEY (`id`),
          KEY `ix_{table}_group` (`group_id`),
          CONSTRAINT `fk_{table}_group` FOREIGN KEY (`group_id`)
            REFERENCES `groups` (`id`) ON DELETE CASCADE
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
        """)

def downgrade():
    op.execute("DROP TABLE IF EXISTS `group_employee_numbers`;")
    op.execute("DROP TABLE IF EXISTS `group_admin_numbers`;")
    op.execute("DROP TABLE IF EXISTS `processing_group_calculation`;")
    op.execute("DROP TABLE IF EXISTS `processing_calculation`;")
    op.execute("DROP TABLE IF EXISTS `transaction_details`;")
    op.execute("DROP TABLE IF EXISTS `payment_methods`;")
