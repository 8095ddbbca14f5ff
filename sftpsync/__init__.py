"""sftpsync — two-way mirror daemon between a local folder and an SFTP server"""

__version__ = "0.1.0"
