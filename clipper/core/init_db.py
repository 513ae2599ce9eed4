"""
Initialize the attachment metadata database.
"""
from clipper.core.db import create_db_and_tables
from clipper.core.logger import logger


def main():
  logger.info("Create tables...")
  create_db_and_tables()
  logger.info("Tables created")


if __name__ == "__main__":
  main()
