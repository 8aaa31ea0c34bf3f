#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
	WSGI entry point for the SurveySeal Flask application.
	The WSGI host imports this file and calls `application`,
	which must reference the Flask app returned by create_app().
"""

from surveyseal.server import create_app

# WSGI servers look up this symbol
application = create_app()
