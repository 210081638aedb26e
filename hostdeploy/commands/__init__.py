"""hostdeploy CLI commands"""
