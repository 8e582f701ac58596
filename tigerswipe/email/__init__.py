"""Email records and non-Gmail sources"""
