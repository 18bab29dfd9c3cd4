from __future__ import annotations

# maximal line length when calling readline(). This is to prevent
# reading arbitrary length lines. RFC 3977 limits NNTP line length to
# 512 characters, including CRLF. We have selected 2048 just to be on
# the safe side.
_MAXLINE = 2048

# Standard port used by NNTP servers
NNTP_PORT = 119
NNTP_SSL_PORT = 563

# Line terminator (we always output CRLF, but also accept a bare LF)
_CRLF = b"\r\n"

# Greeting codes: posting allowed / posting prohibited
_WELCOME = {"200", "201"}

_LIST_OK = "215"
_GROUP_OK = "211"
_HEAD_OK = "221"
_BODY_OK = "222"
_POST_SEND = "340"
_POST_OK = "240"
_AUTH_CONTINUE = "381"
_AUTH_OK = "281"

# 423: no article with that number; 430: no article with that message-id
_NO_SUCH_ARTICLE = {"423", "430"}

# Headers a posted article must carry (RFC 5536, section 3.1)
_REQUIRED_POST_HEADERS = ("from", "newsgroups", "subject")
