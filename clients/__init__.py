# Infrastructure clients
from clients.vault_client import VaultClient, get_database_url, get_smtp2go_config
from clients.postgres_client import PostgresClient
from clients.smtp2go_client import Smtp2GoClient
