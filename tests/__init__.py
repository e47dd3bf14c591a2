"""
md5tabsum tests.
The integration test needs docker and runs only when
MD5TABSUM_INTEGRATION is set.
"""
