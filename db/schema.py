# db/schema.py
from __future__ import annotations

import logging

import aiomysql

from db.tx import transaction

log = logging.getLogger(__name__)


TABLES: dict[str, str] = {
    "tournament": """
        CREATE TABLE IF NOT EXISTS tournament (
          tournament_id  INT AUTO_INCREMENT PRIMARY KEY,
          guild_id       BIGINT NULL,
          created_by     BIGINT NULL,
          name           VARCHAR(128) NOT NULL,
          date           DATE NOT NULL,
          status         ENUM('upcoming', 'in-progress', 'completed') NOT NULL DEFAULT 'upcoming',
          created_at     DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
          updated_at     DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6) ON UPDATE CURRENT_TIMESTAMP(6),
          KEY ix_tournament_guild (guild_id, date)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
    "participant": """
        CREATE TABLE IF NOT EXISTS participant (
          participant_id INT AUTO_INCREMENT PRIMARY KEY,
          tournament_id  INT NOT NULL,
          seed           INT NOT NULL,
          name           VARCHAR(100) NOT NULL,
          created_at     DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
          UNIQUE KEY uq_participant_seed (tournament_id, seed),
          CONSTRAINT fk_participant_tournament FOREIGN KEY (tournament_id)
            REFERENCES tournament (tournament_id) ON DELETE CASCADE
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
    "tournament_match": """
        CREATE TABLE IF NOT EXISTS tournament_match (
          tournament_id    INT NOT NULL,
          match_id         INT NOT NULL,
          round_no         INT NOT NULL,
          position         INT NOT NULL,
          participant_a_id INT NULL,
          participant_b_id INT NULL,
          winner_id        INT NULL,
          updated_at       DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6) ON UPDATE CURRENT_TIMESTAMP(6),
          PRIMARY KEY (tournament_id, match_id),
          UNIQUE KEY uq_match_slot (tournament_id, round_no, position),
          CONSTRAINT fk_match_tournament FOREIGN KEY (tournament_id)
            REFERENCES tournament (tournament_id) ON DELETE CASCADE,
          CONSTRAINT fk_match_a FOREIGN KEY (participant_a_id)
            REFERENCES participant (participant_id) ON DELETE SET NULL,
          CONSTRAINT fk_match_b FOREIGN KEY (participant_b_id)
            REFERENCES participant (participant_id) ON DELETE SET NULL,
          CONSTRAINT fk_match_winner FOREIGN KEY (winner_id)
            REFERENCES participant (participant_id) ON DELETE SET NULL
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
}


async def ensure_schema(pool: aiomysql.Pool) -> None:
    """
    Create the bracket tables if they are missing. Safe to run on every start.
    """
    async with transaction(pool, dict_rows=False) as (_conn, cur):
        for name, ddl in TABLES.items():
            await cur.execute(ddl)
            log.debug("ensured table %s", name)
    log.info("Schema ready (%s)", ", ".join(TABLES))
