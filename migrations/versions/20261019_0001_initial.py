# migrations/versions/20261019_0001_initial.py
# Initial schema for the billing MySQL tables
from alembic import op

# Revision identifiers, used by Alembic.
revision = "20261019_0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    # Users
    op.execute("""
    CREATE TABLE IF NOT EXISTS `users` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `name` VARCHAR(100) NOT NULL,
      `email` VARCHAR(191) NOT NULL,
      `password` VARCHAR(255) NOT NULL,
      `phone` VARCHAR(20) NULL,
      `worktype` VARCHAR(255) NULL,
      `role` VARCHAR(20) NOT NULL,
      `rate` JSON NULL,
      `agent_rates` JSON NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      UNIQUE KEY `ux_users_email` (`email`),
      KEY `ix_users_role` (`role`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Banks
    op.execute("""
    CREATE TABLE IF NOT EXISTS `banks` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `bank_name` VARCHAR(100) NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      UNIQUE KEY `ux_banks_name` (`bank_name`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Groups
    op.execute("""
    CREATE TABLE IF NOT EXISTS `groups` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `name` VARCHAR(100) NOT NULL,
      `type` VARCHAR(50) NULL,
      `owner` INT NOT NULL,
      `same_rate` DECIMAL(10,2) NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      KEY `ix_groups_type` (`type`),
      CONSTRAINT `fk_group_owner` FOREIGN KEY (`owner`) REFERENCES `users` (`id`) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Group bank rates
    op.execute("""
    CREATE TABLE IF NOT EXISTS `group_bank_rate` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `group_id` INT NOT NULL,
      `bank_id` INT NOT NULL,
      `rate` DECIMAL(10,2) NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      UNIQUE KEY `ux_group_bank` (`group_id`,`bank_id`),
      CONSTRAINT `fk_gbr_group` FOREIGN KEY (`group_id`) REFERENCES `groups` (`id`) ON DELETE CASCADE,
      CONSTRAINT `fk_gbr_bank` FOREIGN KEY (`bank_id`) REFERENCES `banks` (`id`) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Bills (bank_id NULL for same-rate groups)
    op.execute("""
    CREATE TABLE IF NOT EXISTS `bill` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `bill_date` DATE NOT NULL,
      `group_id` INT NOT NULL,
      `bank_id` INT NULL,
      `client_id` INT NOT NULL,
      `agent_id` INT NOT NULL,
      `amount` DECIMAL(12,2) NOT NULL,
      `rate` DECIMAL(12,2) NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      KEY `ix_bill_agent` (`agent_id`),
      KEY `ix_bill_client` (`client_id`),
      CONSTRAINT `fk_bill_group` FOREIGN KEY (`group_id`) REFERENCES `groups` (`id`),
      CONSTRAINT `fk_bill_bank` FOREIGN KEY (`bank_id`) REFERENCES `banks` (`id`),
      CONSTRAINT `fk_bill_client` FOREIGN KEY (`client_id`) REFERENCES `users` (`id`),
      CONSTRAINT `fk_bill_agent` FOREIGN KEY (`agent_id`) REFERENCES `users` (`id`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Agent bills: one derived row per Claim/Depo bill
    op.execute("""
    CREATE TABLE IF NOT EXISTS `agent_bill` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `bill_id` INT NOT NULL,
      `bill_date` DATE NOT NULL,
      `group_id` INT NOT NULL,
      `client_id` INT NOT NULL,
      `agent_id` INT NOT NULL,
      `source` VARCHAR(10) NOT NULL,
      `bank_id` INT NULL,
      `amount` DECIMAL(12,2) NOT NULL,
      `rate` DECIMAL(12,4) NOT NULL,
      `total` DECIMAL(14,2) NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      `updated_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      UNIQUE KEY `ux_agent_bill_bill` (`bill_id`),
      KEY `ix_agent_bill_agent_source` (`agent_id`,`source`),
      CONSTRAINT `fk_agent_bill_bill` FOREIGN KEY (`bill_id`) REFERENCES `bill` (`id`) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Other bills
    op.execute("""
    CREATE TABLE IF NOT EXISTS `other_bill` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `kind` VARCHAR(20) NOT NULL,
      `bill_date` DATE NOT NULL,
      `group_id` INT NULL,
      `client_id` INT NULL,
      `agent_id` INT NULL,
      `comment` TEXT NULL,
      `amount` DECIMAL(12,2) NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      CONSTRAINT `chk_other_bill_kind` CHECK (LOWER(`kind`) IN ('client','agent')),
      CONSTRAINT `fk_other_bill_group` FOREIGN KEY (`group_id`) REFERENCES `groups` (`id`),
      CONSTRAINT `fk_other_bill_client` FOREIGN KEY (`client_id`) REFERENCES `users` (`id`),
      CONSTRAINT `fk_other_bill_agent` FOREIGN KEY (`agent_id`) REFERENCES `users` (`id`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

    # Dollar rates
    op.execute("""
    CREATE TABLE IF NOT EXISTS `dollar_rate` (
      `id` INT NOT NULL AUTO_INCREMENT,
      `rate_date` DATE NOT NULL,
      `rate` DECIMAL(12,4) NOT NULL,
      `created_at` DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
      PRIMARY KEY (`id`),
      KEY `ix_dollar_rate_date` (`rate_date`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_0900_ai_ci;
    """)

def downgrade():
    op.execute("DROP TABLE IF EXISTS `dollar_rate`;")
    op.execute("DROP TABLE IF EXISTS `other_bill`;")
    op.execute("DROP TABLE IF EXISTS `agent_bill`;")
    op.execute("DROP TABLE IF EXISTS `bill`;")
    op.execute("DROP TABLE IF EXISTS `group_bank_rate`;")
    op.execute("DROP TABLE IF EXISTS `groups`;")
    op.execute("DROP TABLE IF EXISTS `banks`;")
    op.execute("DROP TABLE IF EXISTS `users`;")
