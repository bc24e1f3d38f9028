"""
Genre lookup tables shared by preference extraction, buzz estimation and scoring.
Codes are TMDB genre ids, kept as strings.
"""

# TMDB genre id -> display name (movie and TV lists)
GENRE_NAMES = {
    '28': 'Action', '12': 'Adventure', '16': 'Animation', '35': 'Comedy',
    '80': 'Crime', '99': 'Documentary', '18': 'Drama', '10751': 'Family',
    '14': 'Fantasy', '36': 'History', '27': 'Horror', '10402': 'Music',
    '9648': 'Mystery', '10749': 'Romance', '878': 'Sci-Fi', '10770': 'TV Movie',
    '53': 'Thriller', '10752': 'War', '37': 'Western',
    # TV genres
    '10759': 'Action', '10762': 'Kids', '10763': 'News', '10764': 'Reality',
    '10765': 'Sci-Fi', '10766': 'Soap', '10767': 'Talk', '10768': 'War & Politics',
}

# Genres that tend to generate a lot of online discussion
HIGH_DISCUSSION_GENRES = {'Drama', 'Sci-Fi', 'Action', 'Fantasy', 'Thriller', 'Horror'}

# Answer keywords -> genre code, scanned over every quiz answer
GENRE_KEYWORDS = [
    (('action', 'adventure'), '28'),
    (('comedy', 'funny', 'laugh'), '35'),
    (('drama', 'emotional'), '18'),
    (('horror', 'scary'), '27'),
    (('romance', 'romantic', 'love'), '10749'),
    (('sci-fi', 'scifi', 'science fiction'), '878'),
    (('thriller', 'suspense'), '53'),
    (('documentary',), '99'),
    (('fantasy', 'magical'), '14'),
    (('mystery', 'detective'), '9648'),
    (('animated', 'animation'), '16'),
    (('crime', 'true-crime'), '80'),
    (('historical', 'history'), '36'),
]

# Genre names used by explicit genre priorities -> codes
GENRE_PRIORITY_CODES = {
    'action': ('28',),
    'adventure': ('12',),
    'animated': ('16',),
    'animation': ('16',),
    'comedy': ('35',),
    'crime': ('80',),
    'true-crime': ('80',),
    'documentary': ('99',),
    'drama': ('18',),
    'family': ('10751',),
    'fantasy': ('14',),
    'historical': ('36',),
    'history': ('36',),
    'horror': ('27',),
    'supernatural': ('27',),
    'mystery': ('9648',),
    'romance': ('10749',),
    'sci-fi': ('878',),
    'scifi': ('878',),
    'scifi-fantasy': ('878', '14'),
    'thriller': ('53',),
    'war': ('10752',),
    'western': ('37',),
}

# Mood keyword -> genre codes, used when no genre was named
MOOD_GENRES = {
    'happy': ('35', '10751', '16'),
    'sad': ('18', '10749'),
    'excited': ('28', '12', '53', '878'),
    'scared': ('27', '9648'),
    'relaxed': ('35', '10751', '10770'),
    'thoughtful': ('18', '99', '36'),
    # quiz vibe answers
    'laugh': ('35',),
    'cry': ('18', '10749'),
    'drama': ('18',),
    'mind-blowing': ('878', '9648'),
    'uplifting': ('35', '10751'),
    'plot-twists': ('53', '9648'),
    'cozy': ('35', '10751', '16'),
    'dark': ('27', '53', '80'),
    'educational': ('99', '36'),
    'background': ('35', '10770'),
}


def genre_names(codes):
    """Display names for a collection of genre codes (unknown codes are skipped)."""
    return {GENRE_NAMES[code] for code in codes if code in GENRE_NAMES}
