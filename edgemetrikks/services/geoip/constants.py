"""GeoIP constants."""

# Locales shipped in GeoLite2/GeoIP2 City databases
ALLOWED_GEOIP_LOCALES: list[str] = ["de", "en", "es", "fr", "ja", "pt-BR", "ru", "zh-CN"]
GEOIP_LOCALES_DEFAULT: list[str] = ["en"]

# ISO 3166-2 codes never contain ';'
SUBDIVISION_SEPARATOR = ";"
