# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides a representative tree of solutions and projects on disk.
"""

from pathlib import Path

import pytest

SDK_LIBRARY = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFrameworks>netstandard2.0;net462</TargetFrameworks>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="12.0.1" />
  </ItemGroup>
</Project>
"""

SDK_APP = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <OutputType>Exe</OutputType>
    <TargetFramework>net462</TargetFramework>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="EntityFramework" Version="6.2.0" />
    <PackageReference Include="StyleCop.Analyzers" Version="1.1.118">
      <PrivateAssets>all</PrivateAssets>
    </PackageReference>
  </ItemGroup>
  <ItemGroup>
    <ProjectReference Include="..\\Lib\\Lib.csproj" />
    <ProjectReference Include="..\\Core\\Core.csproj" />
  </ItemGroup>
</Project>
"""

SDK_CORE = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>netstandard2.0</TargetFramework>
  </PropertyGroup>
  <ItemGroup>
    <ProjectReference Include="..\\Lib\\Lib.csproj" />
  </ItemGroup>
</Project>
"""

OLD_TESTS = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <TargetFrameworkVersion>v4.6.2</TargetFrameworkVersion>
  </PropertyGroup>
  <ItemGroup>
    <Reference Include="System" />
  </ItemGroup>
  <ItemGroup>
    <None Include="packages.config" />
  </ItemGroup>
</Project>
"""

PACKAGES_CONFIG = """<?xml version="1.0" encoding="utf-8"?>
<packages>
  <package id="NUnit" version="3.11.0" targetFramework="net462" />
</packages>
"""

SHOP_SLN = """
Microsoft Visual Studio Solution File, Format Version 12.00
# Visual Studio 15
VisualStudioVersion = 15.0.28010.2036
Project("{9A19103F-16F7-4668-BE54-9A1E7A4F7556}") = "App", "App\\App.csproj", "{A}"
EndProject
Project("{9A19103F-16F7-4668-BE54-9A1E7A4F7556}") = "Core", "Core\\Core.csproj", "{B}"
EndProject
Project("{9A19103F-16F7-4668-BE54-9A1E7A4F7556}") = "Lib", "Lib\\Lib.csproj", "{C}"
EndProject
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Tests", "Tests\\Tests.csproj", "{D}"
EndProject
"""


def write(root: Path, relative: str, contents: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
    return path


@pytest.fixture
def vehicles_tree(tmp_path: Path) -> Path:
    """Two solution directories with linked and orphaned projects.

    car.sln mentions ford and sub\\toyota; bmw is orphaned.
    trucks/truck.sln mentions volvo; mercedes and renault are orphaned.
    """
    root = tmp_path / "vehicles"
    write(root, "car.sln", '"ford.csproj"\n"sub\\toyota.csproj"\n')
    write(root, "ford.csproj")
    write(root, "bmw.csproj")
    write(root, "sub/toyota.csproj")
    write(root, "trucks/truck.sln", '"volvo.csproj"')
    write(root, "trucks/volvo.csproj")
    write(root, "trucks/mercedes.csproj")
    write(root, "trucks/renault.csproj")
    # Never scanned
    write(root, "bin/ignored.csproj")
    write(root, "trucks/obj/ignored.sln")
    return root


@pytest.fixture
def shop_tree(tmp_path: Path) -> Path:
    """A solution whose App references Core and Lib, and Core references Lib."""
    root = tmp_path / "shop"
    write(root, "Shop.sln", SHOP_SLN)
    write(root, "App/App.csproj", SDK_APP)
    write(root, "App/appsettings.json", "{}")
    write(root, "Core/Core.csproj", SDK_CORE)
    write(root, "Lib/Lib.csproj", SDK_LIBRARY)
    write(root, "Tests/Tests.csproj", OLD_TESTS)
    write(root, "Tests/packages.config", PACKAGES_CONFIG)
    write(root, "Tests/bin/Debug/SolutionInfo.cs")
    write(root, "SolutionInfo.cs")
    write(root, "Shop.suo")
    return root
